from mealplan.services.similarity import (
    bigram_jaccard,
    core_title,
    is_near_duplicate,
    levenshtein,
    title_similarity,
    titles_match,
)


def test_title_similarity_identity_including_empty():
    for s in ["", "a", "Spaghetti Bolognese", "ÉCLAIR"]:
        assert title_similarity(s, s) == 1


def test_title_similarity_is_case_insensitive_and_symmetric():
    assert title_similarity("Pad Thai", "pad thai") == 1
    assert title_similarity("kitten", "sitting") == title_similarity("sitting", "kitten")
    assert levenshtein("kitten", "sitting") == 3


def test_bigram_jaccard_empty_union_is_zero():
    assert bigram_jaccard([], []) == 0
    assert bigram_jaccard(["a"], ["b"]) == 0  # 한 글자짜리는 bigram 없음


def test_bigram_jaccard_identical_lists():
    assert bigram_jaccard(["Garlic", "onion"], ["garlic", "ONION"]) == 1


def test_filler_words_do_not_hide_duplicates():
    assert core_title("The Best Spaghetti Bolognese Recipe") == "Spaghetti Bolognese"
    assert titles_match("Spaghetti Bolognese", "Spaghetti Bolognese Recipe")
    assert not titles_match("Chicken Curry", "Beef Stew")


def test_near_duplicate_by_ingredients_uses_first_six_only(make_recipe):
    shared = ["flour", "sugar", "butter", "eggs", "milk", "vanilla"]
    a = make_recipe("tasty-1", "Grandma's Cake", shared + ["lemon zest"])
    b = make_recipe("spn-2", "Sunday Sponge", shared + ["chocolate chips", "walnuts", "cinnamon"])
    assert is_near_duplicate(a, b)

    c = make_recipe("spn-3", "Beef Stew", ["beef", "carrot", "potato", "stock", "thyme", "onion"])
    assert not is_near_duplicate(a, c)
