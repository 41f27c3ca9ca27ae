from touche2021.synonyms import ADJECTIVE, NOUN, SynonymExpander


def test_lookup_flattens_noun_and_adjective_senses(expander):
    assert expander.lookup("safe") == frozenset({"condom", "rubber", "good", "secure", "dependable"})


def test_lookup_never_returns_term_or_multiword_forms(expander):
    synonyms = expander.lookup("safe")
    assert "safe" not in synonyms
    assert all(" " not in s for s in synonyms)


def test_lookup_lowercases_and_deduplicates(expander):
    synonyms = expander.lookup("safe")
    assert "Secure" not in synonyms
    assert sorted(synonyms).count("secure") == 1


def test_unknown_term_yields_empty_set(expander):
    assert expander.lookup("vaping") == frozenset()
    assert expander.lookup("zyzzyva") == frozenset()


def test_lookup_queries_both_parts_of_speech(lexical_db):
    expander = SynonymExpander(lexical_db)
    expander.lookup("school")
    assert lexical_db.calls == [("school", NOUN), ("school", ADJECTIVE)]


def test_lookup_is_memoised(lexical_db):
    expander = SynonymExpander(lexical_db)
    first = expander.lookup("safe")
    second = expander.lookup("safe")

    assert first == second
    assert len(lexical_db.calls) == 2
    assert expander.cache_info() == {"hits": 1, "misses": 1, "size": 1}
