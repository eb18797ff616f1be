"""
Property-based tests with Hypothesis.
"""

import math

from hypothesis import given, settings, strategies as st

from rest_api.routers._common.pagination import Pagination
from rest_api.services.chatbot import ConversationHistoryStore, fallback_reply
from rest_api.services.chatbot.fallback import DEFAULT_REPLY, GREETING_REPLY
from shared.utils.validators import escape_like_pattern, password_policy_violations, validate_room_id


class TestPaginationProperties:

    @given(
        page=st.integers(min_value=-5, max_value=1_000),
        limit=st.integers(min_value=-5, max_value=1_000),
    )
    def test_page_and_limit_are_clamped(self, page, limit):
        pagination = Pagination(page=page, limit=limit, max_limit=100)
        assert pagination.page >= 1
        assert 1 <= pagination.limit <= 100
        assert pagination.offset == (pagination.page - 1) * pagination.limit

    @given(
        total=st.integers(min_value=0, max_value=10_000),
        limit=st.integers(min_value=1, max_value=100),
    )
    def test_total_pages_covers_every_item(self, total, limit):
        pagination = Pagination(limit=limit)
        pages = pagination.total_pages(total)
        assert pages == math.ceil(total / limit)
        assert pages * limit >= total
        if total:
            assert (pages - 1) * limit < total


class TestHistoryProperties:

    @given(
        max_messages=st.integers(min_value=1, max_value=30),
        max_sessions=st.integers(min_value=1, max_value=5),
        exchanges=st.lists(st.integers(min_value=1, max_value=10), max_size=60),
    )
    @settings(max_examples=50)
    def test_bounds_always_hold(self, max_messages, max_sessions, exchanges):
        store = ConversationHistoryStore(max_messages=max_messages, max_sessions=max_sessions)
        for n, user_id in enumerate(exchanges):
            store.append_exchange(user_id, f"q{n}", f"a{n}")
            assert len(store) <= max_sessions
            assert len(store.get(user_id)) <= max_messages

        # The most recent speaker is never evicted
        if exchanges:
            assert exchanges[-1] in store
            assert store.get(exchanges[-1])[-1]["role"] == "model"


class TestFallbackProperties:

    @given(st.text(max_size=200))
    def test_deterministic_and_never_empty(self, message):
        reply = fallback_reply(message)
        assert reply
        assert reply == fallback_reply(message)

    @given(st.text(alphabet="0123456789 .,;:!?-", max_size=50))
    def test_no_keywords_gives_default(self, message):
        assert fallback_reply(message) == DEFAULT_REPLY

    @given(st.sampled_from(["hi", "hello", "hey"]), st.text(alphabet="0123456789 ", max_size=20))
    def test_greeting_wins(self, greeting, suffix):
        assert fallback_reply(f"{greeting.upper()} {suffix}") == GREETING_REPLY


class TestValidatorProperties:

    @given(st.text(max_size=40))
    def test_password_policy_matches_rules(self, password):
        problems = password_policy_violations(password)
        acceptable = (
            len(password) >= 8
            and any(c.isascii() and c.isupper() for c in password)
            and any(c.isascii() and c.islower() for c in password)
            and any(c.isdigit() and c.isascii() for c in password)
        )
        assert (problems == []) == acceptable

    @given(st.text(max_size=50))
    def test_escaped_like_pattern_has_no_bare_wildcards(self, value):
        escaped = escape_like_pattern(value)
        i = 0
        while i < len(escaped):
            if escaped[i] == "\\":
                i += 2
                continue
            assert escaped[i] not in "%_"
            i += 1

    @given(st.from_regex(r"[A-Za-z0-9_\-:.@]{1,100}", fullmatch=True))
    def test_valid_room_ids_round_trip(self, room_id):
        assert validate_room_id(room_id) == room_id
