from __future__ import annotations

import pytest

from collab_chat.application.dto.notification import CreateNotificationDTO
from collab_chat.application.exceptions import ForbiddenError, NotFoundError, ValidationError
from collab_chat.services import notification_service
from tests.conftest import ALICE, BOB, FakeNotifications


@pytest.fixture
def repo() -> FakeNotifications:
    return FakeNotifications()


@pytest.mark.asyncio
async def test_list_only_own(alice, repo):
    mine = repo.add(user_id=ALICE)
    repo.add(user_id=BOB)

    items = await notification_service.list_notifications(alice, repo)

    assert [n.id for n in items] == [mine.id]


@pytest.mark.asyncio
async def test_unread_count_ignores_read_and_foreign(alice, repo):
    repo.add(user_id=ALICE)
    repo.add(user_id=ALICE, read=True)
    repo.add(user_id=BOB)

    assert await notification_service.unread_count(alice, repo) == 1


@pytest.mark.asyncio
async def test_mark_read(alice, repo):
    n = repo.add(user_id=ALICE)
    await notification_service.mark_read(n.id, alice, repo)
    assert repo.items[n.id].read is True


@pytest.mark.asyncio
async def test_mark_read_missing(alice, repo):
    with pytest.raises(NotFoundError):
        await notification_service.mark_read("nope", alice, repo)


@pytest.mark.asyncio
async def test_mark_read_someone_elses(alice, repo):
    n = repo.add(user_id=BOB)
    with pytest.raises(ForbiddenError):
        await notification_service.mark_read(n.id, alice, repo)
    assert repo.items[n.id].read is False


@pytest.mark.asyncio
async def test_mark_all_read_counts(alice, repo):
    repo.add(user_id=ALICE)
    repo.add(user_id=ALICE)
    repo.add(user_id=ALICE, read=True)
    assert await notification_service.mark_all_read(alice, repo) == 2
    assert await notification_service.mark_all_read(alice, repo) == 0


@pytest.mark.asyncio
async def test_create_requires_title(repo):
    dto = CreateNotificationDTO(user_id=BOB, type="message", title="  ", message="x")
    with pytest.raises(ValidationError):
        await notification_service.create_notification(dto, repo)


@pytest.mark.asyncio
async def test_create(repo):
    dto = CreateNotificationDTO(user_id=BOB, type="message", title="New message", message="x")
    created = await notification_service.create_notification(dto, repo)
    assert created.read is False
    assert repo.items[created.id].title == "New message"
