#!/usr/bin/env python3
import os
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
from backend.app.lexical_index import LexicalIndex, tokenize
from backend.schemas.io_models import KnowledgeEntry


class TestTokenize(unittest.TestCase):
    def test_lowercases_and_drops_stopwords(self):
        self.assertEqual(tokenize("What are your Refund rules?"), ["refund", "rules"])

    def test_only_stopwords_gives_nothing(self):
        self.assertEqual(tokenize("Are you there?"), [])


class TestLexicalIndex(unittest.TestCase):
    def setUp(self):
        self.entries = [
            KnowledgeEntry(question="What is your refund policy?", answer="Refunds within 30 days."),
            KnowledgeEntry(question="Where is the office?", answer="Our office is on Main Street."),
        ]
        self.index = LexicalIndex.build(self.entries)

    def test_empty_index_scores_nothing(self):
        index = LexicalIndex.build([])
        self.assertEqual(len(index), 0)
        self.assertEqual(index.score("refund"), {})

    def test_matching_document_scores_highest(self):
        scores = self.index.score("refund please")
        self.assertGreater(scores[0], 0)
        self.assertEqual(scores[1], 0)

    def test_repeated_term_counts_per_occurrence(self):
        # "office" appears twice in the second document
        single = self.index.score("office")[1]
        self.assertGreater(single, self.index.score("street")[1])

    def test_repeated_query_term_adds_again(self):
        once = self.index.score("office")[1]
        self.assertAlmostEqual(self.index.score("office office")[1], 2 * once)

    def test_apostrophes_match_between_query_and_entry(self):
        index = LexicalIndex.build([KnowledgeEntry(question="What's included?", answer="Parts.")])
        self.assertGreater(index.score("whats included")[0], index.score("included")[0])

    def test_unknown_terms_score_zero(self):
        self.assertEqual(self.index.score("zebra xylophone"), {0: 0.0, 1: 0.0})

    def test_term_in_every_document_still_positive(self):
        entries = [KnowledgeEntry(question="plumbing", answer="plumbing"),
                   KnowledgeEntry(question="plumbing", answer="drains")]
        scores = LexicalIndex.build(entries).score("plumbing")
        self.assertTrue(all(v > 0 for v in scores.values()))

    def test_malformed_and_empty_entries_are_skipped(self):
        entries = [
            {"question": None, "answer": "no question"},
            KnowledgeEntry(question="What are you?", answer=""),
            KnowledgeEntry(question="Hours", answer="9 to 5"),
        ]
        index = LexicalIndex.build(entries)
        self.assertEqual(index.doc_ids, [2])
        self.assertIn(2, index.score("hours"))


if __name__ == "__main__":
    unittest.main()
