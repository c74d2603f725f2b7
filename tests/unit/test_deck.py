"""
Unit tests for vocabulary items and the JSON deck loader.
"""

import json

import pytest

from lexis.review.deck import VocabularyDeck
from lexis.review.state import VocabularyItem


class TestVocabularyItem:
    def test_from_dict_defaults(self):
        item = VocabularyItem.from_dict({"headword": " Ephemeral ", "meaning": "Short-lived"})

        assert item.id == "ephemeral"
        assert item.headword == "Ephemeral"
        assert item.category == "general"
        assert item.difficulty == "Beginner"
        assert item.example is None

    def test_word_key_is_accepted(self):
        item = VocabularyItem.from_dict({"word": "candid", "meaning": "Frank", "id": 7})
        assert item.headword == "candid"
        assert item.id == "7"

    def test_unknown_difficulty_falls_back(self):
        item = VocabularyItem.from_dict({"word": "x", "meaning": "y", "difficulty": "Expert"})
        assert item.difficulty == "Beginner"

    @pytest.mark.parametrize("data", [{"meaning": "m"}, {"headword": "h"}, {"headword": "", "meaning": "m"}])
    def test_missing_fields_rejected(self, data):
        with pytest.raises(ValueError):
            VocabularyItem.from_dict(data)

    def test_items_are_immutable(self, sample_items):
        with pytest.raises(AttributeError):
            sample_items[0].meaning = "changed"


class TestVocabularyDeck:
    def test_load_single_file(self, deck_file):
        deck = VocabularyDeck(deck_file)

        assert deck.load() == 3
        assert deck.records_skipped == 1
        assert "ephemeral" in deck
        assert deck.get("eloquent").difficulty == "Intermediate"
        assert deck.categories == ["adjectives", "general"]
        assert [item.id for item in deck.by_category("adjectives")] == ["ephemeral"]

    def test_load_directory(self, tmp_path):
        (tmp_path / "a.json").write_text(
            json.dumps([{"headword": "alpha", "meaning": "first"}]), encoding="utf-8"
        )
        (tmp_path / "b.json").write_text(
            json.dumps({"vocabulary": [{"headword": "beta", "meaning": "second"}]}), encoding="utf-8"
        )
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

        deck = VocabularyDeck(tmp_path)

        assert deck.load() == 2
        assert len(deck.files_loaded) == 2
        assert deck.get_by_ids(["beta", "missing", "alpha"]) == [deck.get("beta"), deck.get("alpha")]

    def test_later_files_override(self, tmp_path):
        (tmp_path / "1.json").write_text(
            json.dumps([{"headword": "gamma", "meaning": "old", "category": "a"}]), encoding="utf-8"
        )
        (tmp_path / "2.json").write_text(
            json.dumps([{"headword": "gamma", "meaning": "new", "category": "b"}]), encoding="utf-8"
        )

        deck = VocabularyDeck(tmp_path)
        deck.load()

        assert len(deck) == 1
        assert deck.get("gamma").meaning == "new"
        assert deck.categories == ["b"]

    def test_broken_json_is_skipped(self, tmp_path):
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")
        deck = VocabularyDeck(tmp_path)
        assert deck.load() == 0

    def test_empty_directory(self, tmp_path):
        assert VocabularyDeck(tmp_path).load() == 0

    def test_no_source(self):
        assert VocabularyDeck().load() == 0
