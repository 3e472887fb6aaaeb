from app.agents.reply_dedup import dedupe_replies, normalize_reply


def test_filler_prefix_collapses_to_shorter_reply():
    assert dedupe_replies(["좋아요", "오 좋아요", "아니요"]) == ["좋아요", "아니요"]


def test_dedupe_is_idempotent():
    replies = ["오 좋아요", "좋아요", "  Next ", "next", "아 그렇구나", "그렇구나", "", "힌트 주세요"]
    once = dedupe_replies(replies)
    assert dedupe_replies(once) == once


def test_shortest_literal_wins_and_ties_keep_first():
    assert dedupe_replies(["오 좋아요", "좋아요"]) == ["좋아요"]
    assert dedupe_replies(["Next", "next", " NEXT "]) == ["Next"]


def test_blank_entries_are_dropped():
    assert dedupe_replies(["", "   ", None, "네"]) == ["네"]
    assert dedupe_replies([]) == []
    assert dedupe_replies(None) == []


def test_filler_needs_following_whitespace():
    assert normalize_reply("오늘 끝!") == "오늘 끝!"
    assert normalize_reply("오 좋아") == "좋아"
    assert normalize_reply("  이   정답은   ") == "정답은"
    assert dedupe_replies(["오늘", "늘"]) == ["오늘", "늘"]


def test_only_one_filler_is_stripped():
    assert normalize_reply("아 오 좋아") == "오 좋아"
