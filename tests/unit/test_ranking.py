"""Dense ranking tests."""

from nextmcq.ranking.ranking import rank_entries, total_pages


class TestRankEntries:
    def test_ranks_descending_by_score(self):
        ranked = rank_entries([
            {"user_id": 1, "score": 10},
            {"user_id": 2, "score": 30},
            {"user_id": 3, "score": 20},
        ])
        assert [(e["user_id"], e["rank"]) for e in ranked] == [(2, 1), (3, 2), (1, 3)]

    def test_ties_broken_by_user_id(self):
        ranked = rank_entries([
            {"user_id": 9, "score": 50},
            {"user_id": 4, "score": 50},
            {"user_id": 7, "score": 50},
        ])
        assert [e["user_id"] for e in ranked] == [4, 7, 9]

    def test_all_equal_scores_still_dense(self):
        ranked = rank_entries([{"user_id": i, "score": 0} for i in range(1, 26)])
        assert [e["rank"] for e in ranked] == list(range(1, 26))

    def test_empty(self):
        assert rank_entries([]) == []


class TestTotalPages:
    def test_exact_multiple(self):
        assert total_pages(100, 50) == 2

    def test_partial_page(self):
        assert total_pages(101, 50) == 3

    def test_no_users(self):
        assert total_pages(0, 50) == 0
