"""Tests for autoresponder/labels.py"""

import pytest

from autoresponder.errors import LabelConflictError, LabelNotFoundError, MailboxError
from autoresponder.labels import LabelResolver
from autoresponder.models import LabelStatus


@pytest.mark.asyncio
async def test_creates_missing_label(mailbox):
    resolution = await LabelResolver(mailbox).resolve("Vacation")

    assert resolution.status == LabelStatus.CREATED
    assert resolution.created
    assert resolution.name == "Vacation"
    assert {"id": resolution.label_id, "name": "Vacation", "type": "user"} in mailbox.labels


@pytest.mark.asyncio
async def test_conflict_falls_back_to_lookup(mailbox):
    mailbox.labels.append({"id": "Label_77", "name": "Vacation", "type": "user"})

    resolution = await LabelResolver(mailbox).resolve("Vacation")

    assert resolution.status == LabelStatus.FOUND
    assert resolution.label_id == "Label_77"
    assert mailbox.calls == ["create_label", "list_labels"]


@pytest.mark.asyncio
async def test_repeated_resolution_converges(mailbox):
    resolver = LabelResolver(mailbox)

    first = await resolver.resolve("Vacation")
    second = await resolver.resolve("Vacation")

    assert first.label_id == second.label_id
    assert first.status == LabelStatus.CREATED
    assert second.status == LabelStatus.FOUND


@pytest.mark.asyncio
async def test_lookup_requires_exact_name(mailbox):
    mailbox.labels.append({"id": "Label_1", "name": "vacation", "type": "user"})
    mailbox.labels.append({"id": "Label_2", "name": "Vacation", "type": "user"})

    resolution = await LabelResolver(mailbox).resolve("Vacation")

    assert resolution.label_id == "Label_2"


@pytest.mark.asyncio
async def test_other_create_failures_propagate(mailbox):
    mailbox.create_error = MailboxError("Gmail labels.create failed (403)", status=403)

    with pytest.raises(MailboxError) as exc_info:
        await LabelResolver(mailbox).resolve("Vacation")

    assert exc_info.value.status == 403
    assert "list_labels" not in mailbox.calls


@pytest.mark.asyncio
async def test_conflict_without_listed_label(mailbox):
    async def conflicting_create(name):
        raise LabelConflictError("taken", status=409)

    mailbox.create_label = conflicting_create

    with pytest.raises(LabelNotFoundError):
        await LabelResolver(mailbox).resolve("Vacation")
