"""Unit tests — calendar, reminders and contacts handlers over in-memory services."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from garden_bridge.capabilities.calendar import CalendarHandler
from garden_bridge.capabilities.contacts import ContactsHandler, next_birthday
from garden_bridge.capabilities.reminders import RemindersHandler
from garden_bridge.exceptions import CommandError
from garden_bridge.services.base import ServiceUnavailableError
from garden_bridge.services.calendar import Calendar, MemoryCalendarService
from garden_bridge.services.contacts import Contact, MemoryContactsService

T0 = datetime(2026, 5, 4, 9, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestCalendar:
    @pytest.fixture
    def handler(self) -> CalendarHandler:
        service = MemoryCalendarService(
            [Calendar(id="home", title="Home"), Calendar(id="work", title="Work", color="#0088ff")]
        )
        return CalendarHandler(service)

    async def test_create_defaults_to_one_hour(self, handler: CalendarHandler) -> None:
        result = await handler.execute(
            "calendar.create", {"title": "Plant tomatoes", "startDate": T0.isoformat()}
        )
        event = result["event"]
        assert result["success"] is True
        assert event["calendar"] == "Home"
        assert datetime.fromisoformat(event["endDate"]) - T0 == timedelta(hours=1)

    async def test_list_filters_by_range_and_calendar(self, handler: CalendarHandler) -> None:
        await handler.execute("calendar.create", {"title": "A", "startDate": T0.isoformat()})
        await handler.execute(
            "calendar.create",
            {"title": "B", "startDate": (T0 + timedelta(days=2)).isoformat(), "calendar": "work"},
        )
        await handler.execute(
            "calendar.create", {"title": "C", "startDate": (T0 + timedelta(days=30)).isoformat()}
        )

        result = await handler.execute(
            "calendar.list",
            {"startDate": T0.isoformat(), "endDate": (T0 + timedelta(days=7)).isoformat()},
        )
        assert [e["title"] for e in result["events"]] == ["A", "B"]

        work = await handler.execute(
            "calendar.list", {"startDate": T0.isoformat(), "calendar": "Work"}
        )
        assert [e["title"] for e in work["events"]] == ["B"]

    async def test_inverted_range_rejected(self, handler: CalendarHandler) -> None:
        with pytest.raises(CommandError) as exc_info:
            await handler.execute(
                "calendar.list",
                {"startDate": T0.isoformat(), "endDate": (T0 - timedelta(days=1)).isoformat()},
            )
        assert exc_info.value.code == "INVALID_PARAMS"

    async def test_update_and_delete(self, handler: CalendarHandler) -> None:
        created = await handler.execute("calendar.create", {"title": "Old", "startDate": T0.isoformat()})
        event_id = created["event"]["id"]

        updated = await handler.execute(
            "calendar.update", {"id": event_id, "title": "New", "location": "Greenhouse"}
        )
        assert updated["event"]["title"] == "New"
        assert updated["event"]["location"] == "Greenhouse"

        await handler.execute("calendar.delete", {"id": event_id})
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("calendar.delete", {"id": event_id})
        assert exc_info.value.code == "NOT_FOUND"

    async def test_unknown_calendar(self, handler: CalendarHandler) -> None:
        with pytest.raises(CommandError) as exc_info:
            await handler.execute(
                "calendar.create", {"title": "X", "startDate": T0.isoformat(), "calendar": "nope"}
            )
        assert exc_info.value.code == "NOT_FOUND"

    async def test_naive_dates_are_localized(self, handler: CalendarHandler) -> None:
        result = await handler.execute(
            "calendar.create", {"title": "Local", "startDate": "2026-05-04T09:00:00"}
        )
        assert datetime.fromisoformat(result["event"]["startDate"]).tzinfo is not None

    async def test_get_calendars(self, handler: CalendarHandler) -> None:
        result = await handler.execute("calendar.getCalendars", {})
        assert result["count"] == 2
        assert result["calendars"][1] == {"id": "work", "title": "Work", "color": "#0088ff", "writable": True}

    async def test_unavailable_backend(self) -> None:
        class Offline(MemoryCalendarService):
            async def list_calendars(self) -> list[Calendar]:
                raise ServiceUnavailableError("EventKit not available")

        handler = CalendarHandler(Offline())
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("calendar.getCalendars", {})
        assert exc_info.value.code == "CALENDAR_UNAVAILABLE"


@pytest.mark.unit
class TestReminders:
    async def test_lifecycle(self) -> None:
        handler = RemindersHandler()
        created = await handler.execute(
            "reminders.create", {"title": "Water the ferns", "priority": 5, "dueDate": T0.isoformat()}
        )
        reminder = created["reminder"]
        assert reminder["list"] == "Reminders"
        assert reminder["dueDate"] == T0.isoformat()

        listed = await handler.execute("reminders.list", {})
        assert listed["count"] == 1

        done = await handler.execute("reminders.complete", {"id": reminder["id"]})
        assert done["reminder"]["completed"] is True
        assert done["reminder"]["completedAt"] is not None

        assert (await handler.execute("reminders.list", {}))["count"] == 0
        assert (await handler.execute("reminders.list", {"includeCompleted": True}))["count"] == 1

        await handler.execute("reminders.delete", {"id": reminder["id"]})
        with pytest.raises(CommandError) as exc_info:
            await handler.execute("reminders.complete", {"id": reminder["id"]})
        assert exc_info.value.code == "NOT_FOUND"

    async def test_priority_bounds(self) -> None:
        with pytest.raises(CommandError) as exc_info:
            await RemindersHandler().execute("reminders.create", {"title": "x", "priority": 12})
        assert exc_info.value.code == "INVALID_PARAMS"

    async def test_get_lists(self) -> None:
        result = await RemindersHandler().execute("reminders.getLists", {})
        assert result["lists"] == [{"id": "default", "title": "Reminders"}]


@pytest.mark.unit
class TestContacts:
    @pytest.fixture
    def handler(self) -> ContactsHandler:
        service = MemoryContactsService(
            [
                Contact(
                    id="c1",
                    given_name="Ada",
                    family_name="Lovelace",
                    emails=["ada@example.org"],
                    phones=["+44 20 7946 0018"],
                    # 2000 is a leap year, so any "today" maps onto it.
                    birthday=date.today().replace(year=2000),
                ),
                Contact(id="c2", given_name="Alan", family_name="Turing", organization="Bletchley"),
            ]
        )
        return ContactsHandler(service)

    async def test_search_by_name_email_and_phone(self, handler: ContactsHandler) -> None:
        assert (await handler.execute("contacts.search", {"query": "lovelace"}))["count"] == 1
        assert (await handler.execute("contacts.search", {"query": "ada@"}))["count"] == 1
        assert (await handler.execute("contacts.search", {"query": "7946 0018"}))["count"] == 1
        assert (await handler.execute("contacts.search", {"query": "bletchley"}))["contacts"][0]["id"] == "c2"

    async def test_search_limit(self, handler: ContactsHandler) -> None:
        result = await handler.execute("contacts.search", {"query": "a", "limit": 1})
        assert result["count"] == 1

    async def test_get(self, handler: ContactsHandler) -> None:
        result = await handler.execute("contacts.get", {"id": "c2"})
        assert result["contact"]["name"] == "Alan Turing"

        with pytest.raises(CommandError) as exc_info:
            await handler.execute("contacts.get", {"id": "zz"})
        assert exc_info.value.code == "NOT_FOUND"

    async def test_birthdays_today(self, handler: ContactsHandler) -> None:
        result = await handler.execute("contacts.birthdays", {"days": 0})
        assert result["count"] == 1
        assert result["birthdays"][0]["daysUntil"] == 0
        assert result["birthdays"][0]["contact"] == {"id": "c1", "name": "Ada Lovelace"}


@pytest.mark.unit
class TestNextBirthday:
    def test_later_this_year(self) -> None:
        assert next_birthday(date(1980, 12, 25), date(2026, 3, 1)) == date(2026, 12, 25)

    def test_already_passed_rolls_over(self) -> None:
        assert next_birthday(date(1980, 1, 2), date(2026, 3, 1)) == date(2027, 1, 2)

    def test_leap_day_in_common_year(self) -> None:
        assert next_birthday(date(2000, 2, 29), date(2026, 1, 1)) == date(2026, 2, 28)
