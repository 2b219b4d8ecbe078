"""Tests for CheckinService against a real (SQLite) database."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from botocore.exceptions import ClientError
from sqlalchemy import func, select

from bookrats.models import CheckIn, Group, GroupMember, User
from bookrats.services.checkin import (
    ALREADY_CHECKED_IN_MESSAGE,
    CheckinError,
    CheckinForm,
    CheckinService,
    parse_count,
)
from bookrats.services.storage import PhotoError, PhotoUpload
from bookrats.services.streak import utc_today


async def count_checkins(db, group_id) -> int:
    result = await db.execute(select(func.count(CheckIn.id)).where(CheckIn.group_id == group_id))
    return result.scalar_one()


def png(size: int = 16) -> PhotoUpload:
    return PhotoUpload(filename="page.png", content_type="image/png", data=b"\x89PNG" + b"0" * size)


class TestParseCount:

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("12", 12),
            ("12 pages", 12),
            ("  7", 7),
            ("-3", 0),
            ("abc", 0),
            ("", 0),
            (None, 0),
            (5, 5),
            (-5, 0),
            (True, 0),
        ],
    )
    def test_parse_count(self, value, expected):
        assert parse_count(value) == expected


class TestCreateCheckin:

    @pytest.mark.asyncio
    async def test_create_success(self, test_db, test_user: User, test_group: Group):
        service = CheckinService(test_db)

        checkin = await service.create_checkin(
            test_user,
            test_group.id,
            CheckinForm(
                title="  Chapter 3  ",
                book_title="Dune",
                description="Spice must flow",
                pages_read="42",
                chapters_read="-1",
            ),
        )

        assert checkin.title == "Chapter 3"
        assert checkin.book_title == "Dune"
        assert checkin.date == utc_today()
        assert checkin.pages_read == 42
        assert checkin.chapters_read == 0
        assert checkin.picture_url is None
        assert checkin.user.email == test_user.email

    @pytest.mark.asyncio
    async def test_blank_optional_fields_stored_as_null(
        self, test_db, test_user: User, test_group: Group
    ):
        checkin = await CheckinService(test_db).create_checkin(
            test_user, test_group.id, CheckinForm(title="Read", book_title="  ", description="")
        )

        assert checkin.book_title is None
        assert checkin.description is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", [None, "", "   "])
    async def test_title_required(self, test_db, test_user: User, test_group: Group, title):
        with pytest.raises(CheckinError) as exc_info:
            await CheckinService(test_db).create_checkin(
                test_user, test_group.id, CheckinForm(title=title)
            )

        assert exc_info.value.code == "CHECKIN_TITLE_REQUIRED"
        assert await count_checkins(test_db, test_group.id) == 0

    @pytest.mark.asyncio
    async def test_non_member_rejected(
        self, test_db, test_user2: User, test_group: Group
    ):
        with pytest.raises(CheckinError) as exc_info:
            await CheckinService(test_db).create_checkin(
                test_user2, test_group.id, CheckinForm(title="Sneaky")
            )

        assert exc_info.value.code == "GROUP_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_second_checkin_same_day_conflicts(
        self, test_db, test_user: User, test_group: Group
    ):
        service = CheckinService(test_db)
        await service.create_checkin(test_user, test_group.id, CheckinForm(title="First"))
        await test_db.commit()

        with pytest.raises(CheckinError) as exc_info:
            await service.create_checkin(test_user, test_group.id, CheckinForm(title="Second"))

        assert exc_info.value.code == "CHECKIN_ALREADY_EXISTS"
        assert exc_info.value.message == ALREADY_CHECKED_IN_MESSAGE
        assert await count_checkins(test_db, test_group.id) == 1

    @pytest.mark.asyncio
    async def test_constraint_violation_reported_as_conflict(
        self, test_db, test_user: User, test_group: Group
    ):
        """A concurrent writer that passes the pre-check still hits the constraint."""
        group_id, user_id = test_group.id, test_user.id
        test_db.add(CheckIn(group_id=group_id, user_id=user_id, date=utc_today(), title="Other tab"))
        await test_db.commit()

        service = CheckinService(test_db)
        with patch.object(service, "has_checked_in_today", AsyncMock(return_value=False)):
            with pytest.raises(CheckinError) as exc_info:
                await service.create_checkin(test_user, group_id, CheckinForm(title="Race"))

        assert exc_info.value.code == "CHECKIN_ALREADY_EXISTS"
        assert await count_checkins(test_db, group_id) == 1

    @pytest.mark.asyncio
    async def test_yesterday_does_not_block_today(
        self, test_db, test_user: User, test_group: Group
    ):
        test_db.add(
            CheckIn(
                group_id=test_group.id,
                user_id=test_user.id,
                date=utc_today() - timedelta(days=1),
                title="Yesterday",
            )
        )
        await test_db.commit()

        checkin = await CheckinService(test_db).create_checkin(
            test_user, test_group.id, CheckinForm(title="Today")
        )

        assert checkin.date == utc_today()

    @pytest.mark.asyncio
    async def test_same_day_in_other_group_allowed(
        self, test_db, test_user: User, test_group: Group
    ):
        other = Group(title="Poetry", created_by=test_user.id)
        test_db.add(other)
        await test_db.flush()
        test_db.add(GroupMember(group_id=other.id, user_id=test_user.id))
        await test_db.commit()

        service = CheckinService(test_db)
        await service.create_checkin(test_user, test_group.id, CheckinForm(title="A"))
        await service.create_checkin(test_user, other.id, CheckinForm(title="B"))

        assert await count_checkins(test_db, test_group.id) == 1
        assert await count_checkins(test_db, other.id) == 1


class TestCheckinPhotos:

    @pytest.mark.asyncio
    async def test_photo_uploaded_and_linked(
        self, test_db, test_user: User, test_group: Group, storage, s3_client
    ):
        _, s3 = s3_client

        checkin = await CheckinService(test_db, storage).create_checkin(
            test_user, test_group.id, CheckinForm(title="With photo", photo=png())
        )

        s3.put_object.assert_awaited_once()
        kwargs = s3.put_object.await_args.kwargs
        assert kwargs["Bucket"] == "check-in-pictures"
        assert kwargs["Key"].startswith(f"{test_user.id}/{test_group.id}/")
        assert kwargs["Key"].endswith(".png")
        assert kwargs["ContentType"] == "image/png"
        assert checkin.picture_url.endswith(kwargs["Key"])
        s3.delete_object.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_photo_deleted_when_constraint_rejects_row(
        self, test_db, test_user: User, test_group: Group, storage, s3_client
    ):
        _, s3 = s3_client
        group_id, user_id = test_group.id, test_user.id
        test_db.add(CheckIn(group_id=group_id, user_id=user_id, date=utc_today(), title="Other tab"))
        await test_db.commit()

        service = CheckinService(test_db, storage)
        with patch.object(service, "has_checked_in_today", AsyncMock(return_value=False)):
            with pytest.raises(CheckinError) as exc_info:
                await service.create_checkin(
                    test_user, group_id, CheckinForm(title="Race", photo=png())
                )

        assert exc_info.value.code == "CHECKIN_ALREADY_EXISTS"
        uploaded_key = s3.put_object.await_args.kwargs["Key"]
        s3.delete_object.assert_awaited_once_with(Bucket="check-in-pictures", Key=uploaded_key)
        assert await count_checkins(test_db, group_id) == 1

    @pytest.mark.asyncio
    async def test_failed_photo_cleanup_keeps_conflict_error(
        self, test_db, test_user: User, test_group: Group, storage, s3_client
    ):
        _, s3 = s3_client
        s3.delete_object.side_effect = ClientError(
            {"Error": {"Code": "InternalError", "Message": "boom"}}, "DeleteObject"
        )
        group_id, user_id = test_group.id, test_user.id
        test_db.add(CheckIn(group_id=group_id, user_id=user_id, date=utc_today(), title="Other tab"))
        await test_db.commit()

        service = CheckinService(test_db, storage)
        with patch.object(service, "has_checked_in_today", AsyncMock(return_value=False)):
            with pytest.raises(CheckinError) as exc_info:
                await service.create_checkin(
                    test_user, group_id, CheckinForm(title="Race", photo=png())
                )

        assert exc_info.value.code == "CHECKIN_ALREADY_EXISTS"
        s3.delete_object.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalid_photo_type_rejected_before_write(
        self, test_db, test_user: User, test_group: Group, storage, s3_client
    ):
        _, s3 = s3_client
        pdf = PhotoUpload(filename="notes.pdf", content_type="application/pdf", data=b"%PDF")

        with pytest.raises(PhotoError) as exc_info:
            await CheckinService(test_db, storage).create_checkin(
                test_user, test_group.id, CheckinForm(title="Bad", photo=pdf)
            )

        assert exc_info.value.code == "PHOTO_INVALID_TYPE"
        s3.put_object.assert_not_awaited()
        assert await count_checkins(test_db, test_group.id) == 0

    @pytest.mark.asyncio
    async def test_upload_failure_aborts_checkin(
        self, test_db, test_user: User, test_group: Group, storage, s3_client
    ):
        _, s3 = s3_client
        s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject"
        )

        with pytest.raises(PhotoError) as exc_info:
            await CheckinService(test_db, storage).create_checkin(
                test_user, test_group.id, CheckinForm(title="Lost", photo=png())
            )

        assert exc_info.value.code == "PHOTO_UPLOAD_FAILED"
        assert await count_checkins(test_db, test_group.id) == 0

    @pytest.mark.asyncio
    async def test_empty_photo_treated_as_absent(
        self, test_db, test_user: User, test_group: Group, storage, s3_client
    ):
        _, s3 = s3_client
        empty = PhotoUpload(filename="", content_type="application/octet-stream", data=b"")

        checkin = await CheckinService(test_db, storage).create_checkin(
            test_user, test_group.id, CheckinForm(title="No photo", photo=empty)
        )

        assert checkin.picture_url is None
        s3.put_object.assert_not_awaited()


class TestReadQueries:

    @pytest.mark.asyncio
    async def test_has_checked_in_today(self, test_db, test_user: User, test_group: Group):
        service = CheckinService(test_db)
        assert not await service.has_checked_in_today(test_group.id, test_user.id)

        await service.create_checkin(test_user, test_group.id, CheckinForm(title="Done"))

        assert await service.has_checked_in_today(test_group.id, test_user.id)

    @pytest.mark.asyncio
    async def test_feed_most_recent_first(
        self, test_db, test_user: User, test_group: Group
    ):
        for n in range(3):
            test_db.add(
                CheckIn(
                    group_id=test_group.id,
                    user_id=test_user.id,
                    date=utc_today() - timedelta(days=n),
                    title=f"Day -{n}",
                    created_at=test_group.created_at - timedelta(days=n),
                )
            )
        await test_db.commit()

        feed = await CheckinService(test_db).list_feed(test_group.id, limit=2)

        assert [c.title for c in feed] == ["Day -0", "Day -1"]
        assert feed[0].user.name == "Ada"

    @pytest.mark.asyncio
    async def test_list_checkin_dates(self, test_db, test_user: User, test_group: Group):
        yesterday = utc_today() - timedelta(days=1)
        test_db.add(
            CheckIn(group_id=test_group.id, user_id=test_user.id, date=yesterday, title="Y")
        )
        await test_db.commit()

        assert await CheckinService(test_db).list_checkin_dates(test_group.id) == [
            (test_user.id, yesterday)
        ]
