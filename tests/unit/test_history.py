"""Unit tests for serialized history trimming."""

import json

from clinical_agents.core import trim_history


def make_blob(roles: list[str], **extra) -> str:
    messages = [{"role": role, "content": f"{role} {i}"} for i, role in enumerate(roles)]
    return json.dumps({"storeState": {"messages": messages, **extra}, "id": "thread-1"})


class TestTrimHistory:
    """Tests for trim_history."""

    def test_short_history_is_unchanged(self):
        blob = make_blob(["user", "assistant"])
        assert trim_history(blob, max_messages=50) is blob

    def test_exact_limit_is_unchanged(self):
        blob = make_blob(["user", "assistant"] * 25)
        assert trim_history(blob, max_messages=50) is blob

    def test_keeps_most_recent_messages(self):
        blob = make_blob(["user", "assistant"] * 30)

        result = json.loads(trim_history(blob, max_messages=50))
        messages = result["storeState"]["messages"]

        assert len(messages) == 50
        assert messages[0] == {"role": "user", "content": "user 10"}
        assert messages[-1] == {"role": "assistant", "content": "assistant 59"}

    def test_cut_advances_to_next_user_message(self):
        # count - max lands on index 2, an assistant reply
        roles = ["user", "assistant", "assistant", "tool", "user", "assistant"]
        blob = make_blob(roles)

        result = json.loads(trim_history(blob, max_messages=4))
        messages = result["storeState"]["messages"]

        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["content"] == "user 4"

    def test_no_user_message_after_cut_keeps_nothing(self):
        blob = make_blob(["user", "assistant", "assistant", "assistant"])

        result = json.loads(trim_history(blob, max_messages=2))

        assert result["storeState"]["messages"] == []

    def test_other_properties_preserved(self):
        blob = make_blob(["user", "assistant"] * 3, version=2)

        result = json.loads(trim_history(blob, max_messages=2))

        assert result["id"] == "thread-1"
        assert result["storeState"]["version"] == 2
        assert len(result["storeState"]["messages"]) == 2

    def test_invalid_json_returned_unchanged(self):
        assert trim_history("{broken", max_messages=1) == "{broken"

    def test_missing_messages_returned_unchanged(self):
        blob = json.dumps({"storeState": {}})
        assert trim_history(blob, max_messages=1) is blob

        blob = json.dumps(["not", "an", "object"])
        assert trim_history(blob, max_messages=1) is blob
