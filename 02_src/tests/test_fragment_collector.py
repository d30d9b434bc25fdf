"""Tests for ReconciliationStore.append()."""

import pytest

from relay.errors import ValidationError
from relay.models import AppendOutcome, BufferState

from conftest import make_fragment


class TestAppend:
    """Tests for collecting reply fragments."""

    @pytest.mark.asyncio
    async def test_append_creates_buffer_lazily(self, store):
        """Test that the first fragment creates the buffer."""
        assert store.poll("c1").fragments == []

        outcome = store.append("c1", make_fragment("m1"))

        assert outcome is AppendOutcome.ACCEPTED
        buffer = store._buffers["c1"]
        assert buffer.state is BufferState.COLLECTING
        assert list(buffer.fragments) == ["m1"]

    @pytest.mark.asyncio
    async def test_duplicate_id_is_noop(self, store):
        """Test that appending the same fragment id twice keeps one entry."""
        store.append("c1", make_fragment("m1", text="first"))
        outcome = store.append("c1", make_fragment("m1", text="second"))

        assert outcome is AppendOutcome.DUPLICATE
        buffer = store._buffers["c1"]
        assert len(buffer.fragments) == 1
        assert buffer.fragments["m1"].text == "first"

    @pytest.mark.asyncio
    async def test_image_only_fragment_accepted(self, store):
        """Test that a fragment with only an image is kept."""
        outcome = store.append(
            "c1", make_fragment("m1", text=None, image="https://example.com/a.png")
        )

        assert outcome is AppendOutcome.ACCEPTED
        assert store._buffers["c1"].fragments["m1"].image == "https://example.com/a.png"

    @pytest.mark.asyncio
    async def test_text_and_image_fragment_accepted(self, store):
        """Test that a fragment with both payloads keeps both."""
        store.append("c1", make_fragment("m1", text="Look:", image="img.png"))

        fragment = store._buffers["c1"].fragments["m1"]
        assert fragment.text == "Look:"
        assert fragment.image == "img.png"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [None, "", "   "])
    async def test_empty_fragment_rejected(self, store, text):
        """Test that a fragment without text or image does not grow the buffer."""
        outcome = store.append("c1", make_fragment("m1", text=text, image=None))

        assert outcome is AppendOutcome.REJECTED_EMPTY
        assert "c1" not in store._buffers

    @pytest.mark.asyncio
    async def test_placeholder_text_rejected(self, store):
        """Test that leaked template placeholders count as empty."""
        outcome = store.append("c1", make_fragment("m1", text="{{ $json.output }}"))

        assert outcome is AppendOutcome.REJECTED_EMPTY
        assert store.stats()["bufferedFragments"] == 0

    @pytest.mark.asyncio
    async def test_placeholder_text_dropped_when_image_present(self, store):
        """Test that the image survives when only the text is a placeholder."""
        store.append("c1", make_fragment("m1", text="{{ $json.text }}", image="img.png"))

        fragment = store._buffers["c1"].fragments["m1"]
        assert fragment.text is None
        assert fragment.image == "img.png"

    @pytest.mark.asyncio
    async def test_empty_rejection_does_not_add_to_existing_buffer(self, store):
        """Test that empty payloads leave an existing buffer unchanged."""
        store.append("c1", make_fragment("m1"))
        store.append("c1", make_fragment("m2", text=None))

        assert list(store._buffers["c1"].fragments) == ["m1"]

    @pytest.mark.asyncio
    async def test_append_requires_conversation_id(self, store):
        """Test that a missing conversation id raises ValidationError."""
        with pytest.raises(ValidationError):
            store.append("", make_fragment("m1"))

        assert store.stats()["buffers"] == 0

    @pytest.mark.asyncio
    async def test_append_arms_timer(self, store):
        """Test that a successful append starts a countdown."""
        store.append("c1", make_fragment("m1"))

        assert store._buffers["c1"].has_live_timer

    @pytest.mark.asyncio
    async def test_duplicate_does_not_rearm_timer(self, store):
        """Test that a duplicate leaves the running countdown in place."""
        store.append("c1", make_fragment("m1"))
        timer = store._buffers["c1"].pending_timer

        store.append("c1", make_fragment("m1"))

        assert store._buffers["c1"].pending_timer is timer

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [42, {"text": "Hi"}, ["Hi"]])
    async def test_non_string_payload_rejected(self, store, value):
        """Test that non-string text or image counts as empty instead of raising."""
        outcome = store.append("c1", make_fragment("m1", text=value, image=value))

        assert outcome is AppendOutcome.REJECTED_EMPTY
        assert "c1" not in store._buffers

    @pytest.mark.asyncio
    async def test_non_string_text_dropped_when_image_present(self, store):
        """Test that a usable image survives a non-string text."""
        store.append("c1", make_fragment("m1", text=42, image="img.png"))

        fragment = store._buffers["c1"].fragments["m1"]
        assert fragment.text is None
        assert fragment.image == "img.png"
