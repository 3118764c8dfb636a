import pytest

from finshare.core.exceptions import NotFound, PermissionDenied, ValidationError
from finshare.models.activity import Activity, ActivityType
from finshare.models.budget_diary import AccessLevel, BudgetDiary, BudgetDiaryMember
from finshare.services import budget_diary_services
from finshare.services.budget_diary_services import (
    add_member,
    create_diary,
    delete_diary,
    get_diary,
    list_members,
    list_user_diaries,
    remove_member,
    rename_diary,
)


async def _share(db, diary, user, level=AccessLevel.VIEWER):
    db.add(BudgetDiaryMember(budget_id=diary.id, user_id=user.id, access_level=level))
    await db.commit()


class TestRename:

    async def test_owner_can_rename(self, db, users, diary, count_rows):
        out = await rename_diary(db, diary.id, users["alice"].id, "Family", "Shared costs")

        assert out.name == "Family"
        assert out.description == "Shared costs"
        assert await count_rows(
            Activity,
            Activity.user_id == users["alice"].id,
            Activity.activity_type == ActivityType.SETTINGS_CHANGE.value,
        ) == 1

    async def test_editor_cannot_rename(self, db, users, diary, count_rows):
        await _share(db, diary, users["bob"], AccessLevel.EDITOR)

        with pytest.raises(PermissionDenied) as exc:
            await rename_diary(db, diary.id, users["bob"].id, "Mine now")

        assert exc.value.operation == "rename_diary"
        assert await count_rows(BudgetDiary, BudgetDiary.name == "Household") == 1
        assert await count_rows(Activity) == 0

    async def test_unknown_diary(self, db, users):
        with pytest.raises(NotFound):
            await rename_diary(db, 404, users["alice"].id, "Nope")

    async def test_blank_name(self, db, users, diary):
        with pytest.raises(ValidationError):
            await rename_diary(db, diary.id, users["alice"].id, "   ")


class TestAddMember:

    async def test_adds_viewer_by_default(self, db, users, diary):
        member = await add_member(db, diary.id, users["alice"].id, "bob@example.com")

        assert member.user_id == users["bob"].id
        assert member.access_level == AccessLevel.VIEWER
        assert member.user_name == "Bob"
        assert member.user_email == "bob@example.com"

    async def test_email_lookup_ignores_case(self, db, users, diary):
        member = await add_member(db, diary.id, users["alice"].id, "  Bob@Example.com ")
        assert member.user_id == users["bob"].id

    async def test_unknown_email_writes_nothing(self, db, users, diary, count_rows):
        with pytest.raises(NotFound):
            await add_member(db, diary.id, users["alice"].id, "nobody@example.com", AccessLevel.EDITOR)

        assert await count_rows(BudgetDiaryMember) == 0
        assert await count_rows(Activity) == 0

    async def test_only_owner_can_invite(self, db, users, diary, count_rows):
        await _share(db, diary, users["bob"], AccessLevel.EDITOR)

        with pytest.raises(PermissionDenied):
            await add_member(db, diary.id, users["bob"].id, "carol@example.com")

        assert await count_rows(BudgetDiaryMember, BudgetDiaryMember.user_id == users["carol"].id) == 0

    async def test_existing_member_is_overwritten(self, db, users, diary, count_rows):
        await add_member(db, diary.id, users["alice"].id, "bob@example.com", AccessLevel.VIEWER)
        member = await add_member(db, diary.id, users["alice"].id, "bob@example.com", AccessLevel.EDITOR)

        assert member.access_level == AccessLevel.EDITOR
        assert await count_rows(BudgetDiaryMember) == 1
        assert await count_rows(BudgetDiaryMember, BudgetDiaryMember.access_level == AccessLevel.EDITOR) == 1

    async def test_owner_level_cannot_be_granted(self, db, users, diary):
        with pytest.raises(ValidationError):
            await add_member(db, diary.id, users["alice"].id, "bob@example.com", AccessLevel.OWNER)

    async def test_owner_cannot_be_downgraded(self, db, users, diary, count_rows):
        with pytest.raises(ValidationError):
            await add_member(db, diary.id, users["alice"].id, "alice@example.com", AccessLevel.VIEWER)

        assert await count_rows(BudgetDiaryMember) == 0


class TestRemoveMember:

    async def test_owner_removes_member(self, db, users, diary, count_rows):
        await _share(db, diary, users["bob"])

        assert await remove_member(db, diary.id, users["alice"].id, users["bob"].id) == {"status": "member_removed"}
        assert await count_rows(BudgetDiaryMember) == 0
        assert await count_rows(Activity, Activity.activity_type == "SETTINGS_CHANGE") == 1

    async def test_owner_entry_cannot_be_removed(self, db, users, diary):
        with pytest.raises(ValidationError):
            await remove_member(db, diary.id, users["alice"].id, users["alice"].id)

    async def test_member_cannot_remove_others(self, db, users, diary, count_rows):
        await _share(db, diary, users["bob"], AccessLevel.EDITOR)
        await _share(db, diary, users["carol"])

        with pytest.raises(PermissionDenied):
            await remove_member(db, diary.id, users["bob"].id, users["carol"].id)

        assert await count_rows(BudgetDiaryMember) == 2

    async def test_not_a_member(self, db, users, diary):
        with pytest.raises(NotFound):
            await remove_member(db, diary.id, users["alice"].id, users["dave"].id)


class TestListing:

    async def test_members_are_enriched_in_one_lookup(self, db, users, diary, monkeypatch):
        await _share(db, diary, users["bob"], AccessLevel.EDITOR)
        await _share(db, diary, users["carol"])
        await _share(db, diary, users["dave"])

        calls = []
        original = budget_diary_services.find_users_by_ids

        async def counting(session, ids):
            calls.append(list(ids))
            return await original(session, ids)

        monkeypatch.setattr(budget_diary_services, "find_users_by_ids", counting)

        members = await list_members(db, diary.id)

        assert len(calls) == 1
        assert [m.user_name for m in members] == ["Bob", "Carol", "Dave"]
        assert all(m.user_id != users["alice"].id for m in members)

    async def test_no_members(self, db, diary):
        assert await list_members(db, diary.id) == []

    async def test_default_diary_created_for_new_user(self, db, users, count_rows):
        diaries = await list_user_diaries(db, users["dave"].id)

        assert len(diaries) == 1
        assert diaries[0].name == "Monthly Budget"
        assert diaries[0].is_default
        assert diaries[0].access_level == AccessLevel.OWNER
        assert await count_rows(BudgetDiary, BudgetDiary.user_id == users["dave"].id) == 1

    async def test_owned_then_shared(self, db, users, diary):
        extra = await create_diary(db, users["bob"].id, "Trip")
        await _share(db, diary, users["bob"], AccessLevel.EDITOR)

        diaries = await list_user_diaries(db, users["bob"].id)

        assert [(d.id, d.access_level) for d in diaries] == [
            (extra.id, AccessLevel.OWNER),
            (diary.id, AccessLevel.EDITOR),
        ]

    async def test_default_listed_first(self, db, users, diary):
        await create_diary(db, users["alice"].id, "Groceries")

        diaries = await list_user_diaries(db, users["alice"].id)

        assert diaries[0].id == diary.id

    async def test_get_diary_for_viewer(self, db, users, diary):
        await _share(db, diary, users["bob"])

        out = await get_diary(db, diary.id, users["bob"].id)

        assert out.access_level == AccessLevel.VIEWER
        assert out.owner_id == users["alice"].id
        assert [m.user_email for m in out.members] == ["bob@example.com"]

    async def test_get_diary_for_stranger(self, db, users, diary):
        with pytest.raises(PermissionDenied):
            await get_diary(db, diary.id, users["carol"].id)


class TestCreateAndDelete:

    async def test_blank_name_gets_placeholder(self, db, users):
        out = await create_diary(db, users["carol"].id, "  ")

        assert out.name == "Untitled Sheet"
        assert not out.is_default

    async def test_only_diary_cannot_be_deleted(self, db, users, diary, count_rows):
        with pytest.raises(ValidationError):
            await delete_diary(db, diary.id, users["alice"].id)

        assert await count_rows(BudgetDiary) == 1

    async def test_delete_removes_memberships_first(self, db, users, diary, count_rows):
        extra = await create_diary(db, users["alice"].id, "Old plans")
        await _share(db, extra, users["bob"])

        assert await delete_diary(db, extra.id, users["alice"].id) == {"status": "deleted"}
        assert await count_rows(BudgetDiary, BudgetDiary.id == extra.id) == 0
        assert await count_rows(BudgetDiaryMember, BudgetDiaryMember.budget_id == extra.id) == 0

    async def test_member_cannot_delete(self, db, users, diary):
        await _share(db, diary, users["bob"], AccessLevel.EDITOR)

        with pytest.raises(PermissionDenied):
            await delete_diary(db, diary.id, users["bob"].id)
