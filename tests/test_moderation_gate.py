"""Tests for ModerationGate."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from anchor.datatypes.content_datatypes import ContentItem, ContentStatus, ContentType
from anchor.moderation.content_filter import (
    REASON_ERROR,
    REASON_GUIDELINES,
    REASON_GUIDELINES_POST,
    REASON_HATEFUL,
    ContentFilter,
)
from anchor.moderation.filtering_prompts import FilteringPromptStore
from anchor.moderation.moderation_classifier import ModerationClassifier
from anchor.moderation.moderation_gate import (
    EMPTY_MESSAGE_REASON,
    EMPTY_POST_REASON,
    STAGE_A,
    STAGE_B,
    STAGE_EMPTY,
    STAGE_SETTLED,
    ModerationGate,
)

from fakes import chat_response, moderation_response


@pytest.fixture
def dispatcher():
    return AsyncMock()


@pytest_asyncio.fixture
async def gate(database, openai_client, dispatcher):
    return ModerationGate(
        database.contents,
        ModerationClassifier(openai_client, "omni-moderation-latest", 1.0),
        ContentFilter(openai_client, "gpt-4o-mini", 50, 1.0),
        FilteringPromptStore(database.config),
        dispatcher,
    )


async def add(database, content_type, item_id, text="", **kwargs):
    item = ContentItem(id=item_id, content_type=content_type, author_id=kwargs.pop("author", "U1"), text=text, **kwargs)
    await database.contents.insert(item)
    return item


def sent_prompt(openai_client):
    return openai_client.chat.completions.create.await_args.kwargs["messages"][0]["content"]


class TestGateDecisions:
    """Tests for the ordered decision steps."""

    @pytest.mark.asyncio
    async def test_missing_item(self, gate):
        """Test that a missing item yields no outcome."""
        assert await gate.moderate(ContentType.PLEA, "nope") is None

    @pytest.mark.asyncio
    async def test_clean_plea_approved(self, gate, database, openai_client):
        """Test that a plea passing both stages is approved with unread count 0."""
        await add(database, ContentType.PLEA, "p1", "I'm struggling today")

        outcome = await gate.moderate(ContentType.PLEA, "p1")

        assert outcome.status is ContentStatus.APPROVED
        assert outcome.stage == STAGE_B
        assert outcome.applied
        stored = await database.contents.get(ContentType.PLEA, "p1")
        assert stored.status is ContentStatus.APPROVED
        assert stored.unread_encouragement_count == 0
        assert sent_prompt(openai_client).endswith("I'm struggling today")

    @pytest.mark.asyncio
    async def test_empty_plea_approved_without_model_calls(self, gate, database, openai_client):
        """Test that a whitespace-only plea is approved before any stage runs."""
        await add(database, ContentType.PLEA, "p1", "   \n ")

        outcome = await gate.moderate(ContentType.PLEA, "p1")

        assert outcome.status is ContentStatus.APPROVED
        assert outcome.stage == STAGE_EMPTY
        openai_client.moderations.create.assert_not_awaited()
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_comment_rejected(self, gate, database):
        """Test that a blank comment is rejected and the post count is unchanged."""
        await add(database, ContentType.POST, "post1", "body", title="t")
        await add(database, ContentType.COMMENT, "c1", "  ", parent_id="post1")

        outcome = await gate.moderate(ContentType.COMMENT, "c1")

        assert outcome.status is ContentStatus.REJECTED
        assert outcome.reason == EMPTY_MESSAGE_REASON
        post = await database.contents.get(ContentType.POST, "post1")
        assert post.comment_count == 0

    @pytest.mark.asyncio
    async def test_empty_post_rejected(self, gate, database, dispatcher):
        """Test that a post with blank title and body is rejected and the author told."""
        await add(database, ContentType.POST, "post1", " ", title=" ")

        outcome = await gate.moderate(ContentType.POST, "post1")

        assert outcome.reason == EMPTY_POST_REASON
        dispatcher.notify_rejection.assert_awaited_once()
        notified = dispatcher.notify_rejection.await_args.args[0]
        assert notified.status is ContentStatus.REJECTED
        assert notified.rejection_reason == EMPTY_POST_REASON

    @pytest.mark.asyncio
    async def test_stage_a_flag_skips_stage_b(self, gate, database, openai_client, dispatcher):
        """Test that a flagged plea is rejected without calling the filter."""
        openai_client.moderations.create.return_value = moderation_response(flagged=True)
        await add(database, ContentType.PLEA, "p1", "something awful")

        outcome = await gate.moderate(ContentType.PLEA, "p1")

        assert outcome.status is ContentStatus.REJECTED
        assert outcome.stage == STAGE_A
        openai_client.chat.completions.create.assert_not_awaited()
        dispatcher.notify_rejection.assert_awaited_once()
        assert outcome.reason == REASON_GUIDELINES
        stored = await database.contents.get(ContentType.PLEA, "p1")
        assert stored.rejection_reason == REASON_GUIDELINES
        assert dispatcher.notify_rejection.await_args.args[0].rejection_reason == REASON_GUIDELINES

    @pytest.mark.asyncio
    async def test_stage_a_flagged_post_uses_post_reason(self, gate, database, openai_client):
        openai_client.moderations.create.return_value = moderation_response(flagged=True)
        await add(database, ContentType.POST, "post1", "spam spam", title="Buy now")

        outcome = await gate.moderate(ContentType.POST, "post1")

        assert outcome.stage == STAGE_A
        assert outcome.reason == REASON_GUIDELINES_POST

    @pytest.mark.asyncio
    async def test_stage_a_error_still_runs_stage_b(self, gate, database, openai_client):
        """Test that a classifier failure does not block on its own."""
        openai_client.moderations.create.side_effect = RuntimeError("down")
        await add(database, ContentType.COMMENT, "c1", "Amen")

        outcome = await gate.moderate(ContentType.COMMENT, "c1")

        assert outcome.status is ContentStatus.APPROVED
        openai_client.chat.completions.create.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stage_b_block_reason(self, gate, database, openai_client, dispatcher):
        """Test that a BLOCK answer maps to a reason and comments are not notified."""
        openai_client.chat.completions.create.return_value = chat_response("BLOCK hateful")
        await add(database, ContentType.COMMENT, "c1", "text")

        outcome = await gate.moderate(ContentType.COMMENT, "c1")

        assert outcome.reason == REASON_HATEFUL
        stored = await database.contents.get(ContentType.COMMENT, "c1")
        assert stored.rejection_reason == REASON_HATEFUL
        dispatcher.notify_rejection.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stage_b_error_fails_closed(self, gate, database, openai_client):
        """Test that a filter failure rejects the item."""
        openai_client.chat.completions.create.side_effect = RuntimeError("timeout")
        await add(database, ContentType.ENCOURAGEMENT, "e1", "Praying", parent_id="p1")

        outcome = await gate.moderate(ContentType.ENCOURAGEMENT, "e1")

        assert outcome.status is ContentStatus.REJECTED
        assert outcome.reason == REASON_ERROR

    @pytest.mark.asyncio
    async def test_rejection_notice_failure_does_not_propagate(self, gate, database, openai_client, dispatcher):
        """Test that a failing rejection notice leaves the settle in place."""
        openai_client.chat.completions.create.return_value = chat_response("BLOCK")
        dispatcher.notify_rejection.side_effect = RuntimeError("push down")
        await add(database, ContentType.PLEA, "p1", "text")

        outcome = await gate.moderate(ContentType.PLEA, "p1")

        assert outcome.status is ContentStatus.REJECTED
        assert (await database.contents.get(ContentType.PLEA, "p1")).status is ContentStatus.REJECTED


class TestGateIdempotency:
    """Tests for redelivery and terminal items."""

    @pytest.mark.asyncio
    async def test_terminal_item_not_touched(self, gate, database, openai_client):
        """Test that an already-settled item is left as is."""
        await add(database, ContentType.PLEA, "p1", "hi", status=ContentStatus.REJECTED, rejection_reason="manual")

        outcome = await gate.moderate(ContentType.PLEA, "p1")

        assert outcome.stage == STAGE_SETTLED
        assert not outcome.applied
        assert outcome.reason == "manual"
        openai_client.moderations.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_double_delivery_counts_comment_once(self, gate, database, openai_client):
        """Test that moderating an approved comment twice bumps the count once."""
        await add(database, ContentType.POST, "post1", "body", title="t")
        await add(database, ContentType.COMMENT, "c1", "Amen", parent_id="post1")

        first = await gate.moderate(ContentType.COMMENT, "c1")
        second = await gate.moderate(ContentType.COMMENT, "c1")

        assert first.applied and not second.applied
        assert second.status is ContentStatus.APPROVED
        post = await database.contents.get(ContentType.POST, "post1")
        assert post.comment_count == 1
        assert openai_client.chat.completions.create.await_count == 1

    @pytest.mark.asyncio
    async def test_lost_race_reports_winner(self, gate, database, openai_client):
        """Test that a concurrent settle during Stage B is reported, not overwritten."""
        await add(database, ContentType.PLEA, "p1", "text")

        async def settle_first(**kwargs):
            item = await database.contents.get(ContentType.PLEA, "p1")
            await database.contents.set_status(item, ContentStatus.REJECTED, "moderator")
            return chat_response("ALLOW")

        openai_client.chat.completions.create.side_effect = settle_first

        outcome = await gate.moderate(ContentType.PLEA, "p1")

        assert not outcome.applied
        assert outcome.status is ContentStatus.REJECTED
        assert outcome.reason == "moderator"


class TestPromptContext:
    """Tests for the values rendered into Stage B prompts."""

    @pytest.mark.asyncio
    async def test_encouragement_gets_original_plea(self, gate, database, openai_client):
        """Test that {originalPlea} carries the plea text."""
        await database.config.set_prompt("encouragementFilteringPrompt", "Plea: {originalPlea} | Reply: {message}")
        await add(database, ContentType.PLEA, "p1", "Please pray for me")
        await add(database, ContentType.ENCOURAGEMENT, "e1", " You are loved ", parent_id="p1", author="U2")

        await gate.moderate(ContentType.ENCOURAGEMENT, "e1")

        assert sent_prompt(openai_client) == "Plea: Please pray for me | Reply: You are loved"

    @pytest.mark.asyncio
    async def test_encouragement_missing_plea_placeholder(self, gate, database, openai_client):
        """Test the substitute text when the plea cannot be found."""
        await database.config.set_prompt("encouragementFilteringPrompt", "{originalPlea}|{message}")
        await add(database, ContentType.ENCOURAGEMENT, "e1", "hi", parent_id="gone")

        await gate.moderate(ContentType.ENCOURAGEMENT, "e1")

        assert sent_prompt(openai_client) == "(Original plea not found)|hi"

    @pytest.mark.asyncio
    async def test_post_gets_title_and_content(self, gate, database, openai_client):
        """Test that posts render title and content separately."""
        await database.config.set_prompt("postFilteringPrompt", "T={title} C={content} M={message}")
        await add(database, ContentType.POST, "post1", " Body ", title=" Title ")

        await gate.moderate(ContentType.POST, "post1")

        assert sent_prompt(openai_client) == "T=Title C=Body M=Title\nBody"

    @pytest.mark.asyncio
    async def test_post_prompt_without_message_slot(self, gate, database, openai_client):
        """Test that a configured post prompt using only {title} and {content} is used."""
        await database.config.set_prompt(
            "postFilteringPrompt", "Reply ALLOW or BLOCK. Title: {title} Content: {content}"
        )
        await add(database, ContentType.POST, "post1", "Body", title="Title")

        outcome = await gate.moderate(ContentType.POST, "post1")

        assert outcome.status is ContentStatus.APPROVED
        assert sent_prompt(openai_client) == "Reply ALLOW or BLOCK. Title: Title Content: Body"

    @pytest.mark.asyncio
    async def test_user_text_is_not_expanded(self, gate, database, openai_client):
        """Test that placeholder names typed by a user reach the filter verbatim."""
        await database.config.set_prompt("encouragementFilteringPrompt", "Plea: {originalPlea} | Reply: {message}")
        await add(database, ContentType.PLEA, "p1", "Please pray for me")
        await add(database, ContentType.ENCOURAGEMENT, "e1", "see {originalPlea}", parent_id="p1", author="U2")

        await gate.moderate(ContentType.ENCOURAGEMENT, "e1")

        assert sent_prompt(openai_client) == "Plea: Please pray for me | Reply: see {originalPlea}"
