from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from pydantic import ValidationError

from glitchlab.core.exceptions import (
    AlreadyCanceled,
    AlreadyRegistered,
    AlreadyReminded,
    Forbidden,
    HasBadge,
    NotCanceled,
    NotFound,
    NotRegistered,
    ValidationFailed,
    WorkshopCanceled,
    WorkshopEnded,
    WorkshopFull,
)
from glitchlab.db.mongo import USERS, WORKSHOPS
from glitchlab.schemas.workshop import WorkshopCreate, WorkshopUpdate

PAST = {"starts_in": -timedelta(days=3)}


def create_payload(**overrides):
    start = datetime.utcnow() + timedelta(days=10)
    payload = {
        "name": "Circuit Bending",
        "nameTranslations": {"en": "Circuit Bending", "it": "Piegare i circuiti"},
        "descriptionTranslations": {"en": "Solder", "it": "Saldare"},
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(hours=3)).isoformat(),
        "imageSrc": "/images/circuit.png",
        "badgeNameTranslations": {"en": "Bender", "it": "Piegatore"},
        "categories": ["9-11", "in-class", "code", "design", "plug"],
        "level": "intermediate",
        "location": "Turin",
        "capacity": 2,
    }
    payload.update(overrides)
    return WorkshopCreate.model_validate(payload)


async def count_of(db, workshop):
    doc = await db[WORKSHOPS].find_one({"_id": workshop["_id"]})
    return doc["registeredCount"]


# Creation and reads


async def test_create_workshop_parses_categories_into_facets(workshop_service, make_user, db):
    instructor = await make_user("instructor")

    created = await workshop_service.create_workshop(instructor, create_payload())

    assert created["status"] == "future"
    assert created["facets"] == {
        "ageRange": "9-11",
        "classType": "in-class",
        "subjects": ["code", "design"],
        "techType": "plug",
    }
    assert created["categories"] == ["9-11", "in-class", "code", "design", "plug"]
    assert created["instructorIds"] == [str(instructor.id)]
    assert created["registeredCount"] == 0
    assert created["canceled"] is False


async def test_create_workshop_requires_instructor(workshop_service, make_user):
    user = await make_user()
    with pytest.raises(Forbidden):
        await workshop_service.create_workshop(user, create_payload())


async def test_create_workshop_rejects_end_before_start(workshop_service, make_user):
    instructor = await make_user("instructor")
    start = datetime.utcnow() + timedelta(days=3)
    payload = create_payload(startDate=start.isoformat(), endDate=(start - timedelta(hours=1)).isoformat())
    with pytest.raises(ValidationFailed):
        await workshop_service.create_workshop(instructor, payload)


@pytest.mark.parametrize("categories", [["robots"], ["6-8", "9-11"], ["plug", "unplug"]])
def test_invalid_categories_are_rejected(categories):
    with pytest.raises(ValidationError):
        create_payload(categories=categories)


async def test_batch_create(workshop_service, make_user, db):
    instructor = await make_user("instructor")

    created = await workshop_service.batch_create(
        instructor, [create_payload(name="One"), create_payload(name="Two")]
    )

    assert [w["name"] for w in created] == ["One", "Two"]
    assert await db[WORKSHOPS].count_documents({}) == 2


async def test_list_workshops_filters(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    future = await make_workshop(instructor, facets={"age_range": "6-8", "subjects": ["code"]})
    past = await make_workshop(instructor, level="advanced", **PAST)
    canceled = await make_workshop(instructor, canceled=True)

    async def ids(**filters):
        return {w["_id"] for w in await workshop_service.list_workshops(**filters)}

    assert await ids() == {str(future["_id"]), str(past["_id"]), str(canceled["_id"])}
    assert await ids(status="future") == {str(future["_id"])}
    assert await ids(status="past") == {str(past["_id"])}
    assert await ids(status="canceled") == {str(canceled["_id"])}
    assert await ids(age_range="6-8", subject="code") == {str(future["_id"])}
    assert await ids(level="advanced") == {str(past["_id"])}
    with pytest.raises(ValidationFailed):
        await workshop_service.list_workshops(status="someday")


async def test_get_workshop(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    workshop = await make_workshop(instructor, **PAST)

    fetched = await workshop_service.get_workshop(str(workshop["_id"]))
    assert fetched["status"] == "past"

    with pytest.raises(ValidationFailed):
        await workshop_service.get_workshop("not-an-id")
    with pytest.raises(NotFound):
        await workshop_service.get_workshop(str(ObjectId()))


async def test_instructor_workshops(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    other = await make_user("instructor")
    user = await make_user()
    mine = await make_workshop(instructor)
    await make_workshop(other)

    listed = await workshop_service.instructor_workshops(str(instructor.id))
    assert [w["_id"] for w in listed] == [str(mine["_id"])]
    assert [w["_id"] for w in await workshop_service.my_instructor_workshops(instructor)] == [str(mine["_id"])]

    with pytest.raises(NotFound):
        await workshop_service.instructor_workshops(str(user.id))


# Registration


async def test_register_increments_count(workshop_service, make_user, make_workshop, db, refresh):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)

    await workshop_service.register(user, str(workshop["_id"]))

    assert await count_of(db, workshop) == 1
    user = await refresh(user)
    assert user.user["registeredWorkshops"] == [workshop["_id"]]
    registered = await workshop_service.registered_workshops(user)
    assert [w["_id"] for w in registered] == [str(workshop["_id"])]


async def test_register_twice_keeps_one_occurrence(workshop_service, make_user, make_workshop, db, refresh):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)

    await workshop_service.register(user, workshop["_id"])
    with pytest.raises(AlreadyRegistered):
        await workshop_service.register(user, workshop["_id"])

    user = await refresh(user)
    assert user.user["registeredWorkshops"].count(workshop["_id"]) == 1
    assert await count_of(db, workshop) == 1


async def test_register_enforces_capacity(workshop_service, make_user, make_workshop, db):
    instructor = await make_user("instructor")
    workshop = await make_workshop(instructor, capacity=1)
    first, second = await make_user(), await make_user()

    await workshop_service.register(first, workshop["_id"])
    with pytest.raises(WorkshopFull):
        await workshop_service.register(second, workshop["_id"])

    assert await count_of(db, workshop) == 1
    assert await db[USERS].find_one({"_id": second.id, "registeredWorkshops": workshop["_id"]}) is None


async def test_register_rejects_canceled_and_past(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    user = await make_user()
    canceled = await make_workshop(instructor, canceled=True)
    past = await make_workshop(instructor, **PAST)

    with pytest.raises(WorkshopCanceled):
        await workshop_service.register(user, canceled["_id"])
    with pytest.raises(WorkshopEnded):
        await workshop_service.register(user, past["_id"])


async def test_register_unknown_workshop(workshop_service, make_user):
    user = await make_user()
    with pytest.raises(NotFound):
        await workshop_service.register(user, str(ObjectId()))
    with pytest.raises(ValidationFailed):
        await workshop_service.register(user, "123")


async def test_unregister(workshop_service, make_user, make_workshop, db, refresh):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])

    await workshop_service.unregister(user, workshop["_id"])

    assert await count_of(db, workshop) == 0
    assert (await refresh(user)).user["registeredWorkshops"] == []
    with pytest.raises(NotRegistered):
        await workshop_service.unregister(user, workshop["_id"])


async def test_counter_never_goes_negative(workshop_service, make_user, make_workshop, db):
    instructor = await make_user("instructor")
    workshop = await make_workshop(instructor)
    # Registration recorded on the user but not on the counter
    user = await make_user(registered_workshops=[workshop["_id"]])

    await workshop_service.unregister(user, workshop["_id"])
    assert await count_of(db, workshop) == 0


# Removal by an instructor


async def test_remove_user_notifies_and_decrements(workshop_service, make_user, make_workshop, db, refresh):
    instructor = await make_user("instructor")
    user = await make_user(email_language="it")
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])

    await workshop_service.remove_user(instructor, str(user.id), str(workshop["_id"]))

    assert await count_of(db, workshop) == 0
    user = await refresh(user)
    assert user.user["registeredWorkshops"] == []
    notification = user.user["notifications"][0]
    assert notification["type"] == "workshop_removal"
    assert notification["workshopName"] == "Arte Glitch"
    assert notification["read"] is False
    assert notification["action"] == {"label": "exploreWorkshopsAction", "href": "/workshops"}


async def test_remove_user_requires_instructor(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    user, other = await make_user(), await make_user()
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])

    with pytest.raises(Forbidden):
        await workshop_service.remove_user(other, str(user.id), str(workshop["_id"]))


async def test_remove_user_not_registered(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)
    with pytest.raises(NotRegistered):
        await workshop_service.remove_user(instructor, str(user.id), str(workshop["_id"]))


async def test_remove_badge_holder_fails(workshop_service, badge_service, make_user, make_workshop, db, refresh):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])
    await badge_service.award(instructor, str(user.id), str(workshop["_id"]))

    with pytest.raises(HasBadge):
        await workshop_service.remove_user(instructor, str(user.id), str(workshop["_id"]))

    assert await count_of(db, workshop) == 1
    assert (await refresh(user)).user["registeredWorkshops"] == [workshop["_id"]]


async def test_notifications_are_capped(workshop_service, make_user, make_workshop, refresh):
    instructor = await make_user("instructor")
    old = [
        {"_id": ObjectId(), "type": "general", "title": "t", "message": "m", "read": True}
        for _ in range(50)
    ]
    user = await make_user(notifications=old)
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])

    await workshop_service.remove_user(instructor, str(user.id), str(workshop["_id"]))

    notifications = (await refresh(user)).user["notifications"]
    assert len(notifications) == 50
    assert notifications[0]["type"] == "workshop_removal"


async def test_registered_users(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    user = await make_user(name="Zoe")
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])

    result = await workshop_service.registered_users(instructor, str(workshop["_id"]))

    assert result["workshop"]["registeredCount"] == 1
    assert [u["name"] for u in result["users"]] == ["Zoe"]
    assert "password" not in result["users"][0]
    with pytest.raises(Forbidden):
        await workshop_service.registered_users(user, str(workshop["_id"]))


# Cancellation


async def test_cancel_scenario(workshop_service, make_user, make_workshop, db, mailer):
    instructor = await make_user("instructor")
    en_user = await make_user()
    it_user = await make_user(email_language="it")
    bystander = await make_user()
    workshop = await make_workshop(instructor)
    other = await make_workshop(instructor)
    for user in (en_user, it_user):
        await workshop_service.register(user, workshop["_id"])
    await workshop_service.register(en_user, other["_id"])

    result = await workshop_service.cancel(instructor, str(workshop["_id"]))

    assert result["workshop"]["status"] == "canceled"
    assert result["workshop"]["registeredCount"] == 0
    assert result["notifications"]["sent"] == 2
    assert sorted(mailer.to("cancellation")) == sorted([en_user.user["email"], it_user.user["email"]])
    languages = {to: args[-1] for kind, to, args in mailer.sent if kind == "cancellation"}
    assert languages[it_user.user["email"]] == "it"
    assert await db[USERS].count_documents({"registeredWorkshops": workshop["_id"]}) == 0
    # Other registrations are untouched
    assert await db[USERS].find_one({"_id": en_user.id, "registeredWorkshops": other["_id"]})
    assert bystander.user["email"] not in mailer.to("cancellation")

    with pytest.raises(AlreadyCanceled):
        await workshop_service.cancel(instructor, str(workshop["_id"]))


async def test_cancel_continues_after_failed_email(workshop_service, make_user, make_workshop, db, mailer):
    instructor = await make_user("instructor")
    first, second = await make_user(), await make_user()
    workshop = await make_workshop(instructor)
    for user in (first, second):
        await workshop_service.register(user, workshop["_id"])
    mailer.failing.add(first.user["email"])

    result = await workshop_service.cancel(instructor, str(workshop["_id"]))

    assert result["notifications"]["sent"] == 1
    assert result["notifications"]["failedRecipients"] == [first.user["email"]]
    assert await db[USERS].count_documents({"registeredWorkshops": workshop["_id"]}) == 0


async def test_cancel_requires_instructor(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)
    with pytest.raises(Forbidden):
        await workshop_service.cancel(user, str(workshop["_id"]))


async def test_uncancel(workshop_service, make_user, make_workshop, db):
    instructor = await make_user("instructor")
    workshop = await make_workshop(instructor, canceled=True, reminder_sent=True)
    start = datetime.utcnow() + timedelta(days=20)

    with pytest.raises(ValidationFailed):
        await workshop_service.uncancel(instructor, str(workshop["_id"]), start, start - timedelta(hours=1))

    result = await workshop_service.uncancel(instructor, str(workshop["_id"]), start, start + timedelta(hours=2))

    assert result["workshop"]["status"] == "future"
    doc = await db[WORKSHOPS].find_one({"_id": workshop["_id"]})
    assert doc["canceled"] is False
    assert doc["reminderSent"] is False

    with pytest.raises(NotCanceled):
        await workshop_service.uncancel(instructor, str(workshop["_id"]), start, start + timedelta(hours=2))


# Reminders


async def test_send_reminder_once(workshop_service, make_user, make_workshop, db, mailer):
    instructor = await make_user("instructor")
    opted_in = await make_user()
    opted_out = await make_user(email_notifications={"workshops": False, "changes": True})
    workshop = await make_workshop(instructor)
    for user in (opted_in, opted_out):
        await workshop_service.register(user, workshop["_id"])

    result = await workshop_service.send_reminder(instructor, str(workshop["_id"]))

    assert result["sentTo"] == 1
    assert result["totalUsers"] == 1
    assert mailer.to("reminder") == [opted_in.user["email"]]
    assert (await db[WORKSHOPS].find_one({"_id": workshop["_id"]}))["reminderSent"] is True

    with pytest.raises(AlreadyReminded):
        await workshop_service.send_reminder(instructor, str(workshop["_id"]))


async def test_reminder_flag_set_even_when_sends_fail(workshop_service, make_user, make_workshop, db, mailer):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])
    mailer.failing.add(user.user["email"])

    result = await workshop_service.send_reminder(instructor, str(workshop["_id"]))

    assert result["sentTo"] == 0
    assert (await db[WORKSHOPS].find_one({"_id": workshop["_id"]}))["reminderSent"] is True


async def test_reminder_for_canceled_workshop(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    workshop = await make_workshop(instructor, canceled=True)
    with pytest.raises(AlreadyCanceled):
        await workshop_service.send_reminder(instructor, str(workshop["_id"]))


# Updates


async def test_update_notifies_on_date_change(workshop_service, make_user, make_workshop, db, mailer):
    instructor = await make_user("instructor")
    opted_in = await make_user(email_language="it")
    opted_out = await make_user(email_notifications={"workshops": True, "changes": False})
    workshop = await make_workshop(instructor)
    for user in (opted_in, opted_out):
        await workshop_service.register(user, workshop["_id"])

    new_start = workshop["startDate"] + timedelta(days=1)
    update = WorkshopUpdate(start_date=new_start, end_date=new_start + timedelta(hours=2))
    result = await workshop_service.update_workshop(instructor, str(workshop["_id"]), update)

    assert result["notifications"]["sent"] == 1
    kind, to, (name, previous, current, language) = mailer.sent[0]
    assert to == opted_in.user["email"]
    assert name == "Arte Glitch"
    assert language == "it"
    assert previous["location"] == current["location"] == "Milan"
    assert current["startDate"] > previous["startDate"]
    doc = await db[WORKSHOPS].find_one({"_id": workshop["_id"]})
    assert doc["registeredCount"] == 2


async def test_update_without_schedule_change_sends_nothing(workshop_service, make_user, make_workshop, db, mailer):
    instructor = await make_user("instructor")
    user = await make_user()
    workshop = await make_workshop(instructor)
    await workshop_service.register(user, workshop["_id"])

    result = await workshop_service.update_workshop(
        instructor, str(workshop["_id"]), WorkshopUpdate(name="Glitch Art II", bg_color="#000000")
    )

    assert "notifications" not in result
    assert mailer.sent == []
    assert result["workshop"]["name"] == "Glitch Art II"
    assert result["workshop"]["bgColor"] == "#000000"


async def test_update_validates_merged_workshop(workshop_service, make_user, make_workshop):
    instructor = await make_user("instructor")
    user, other = await make_user(), await make_user()
    workshop = await make_workshop(instructor, capacity=5)
    for u in (user, other):
        await workshop_service.register(u, workshop["_id"])

    with pytest.raises(ValidationFailed):
        await workshop_service.update_workshop(instructor, str(workshop["_id"]), WorkshopUpdate(capacity=1))
    with pytest.raises(Forbidden):
        await workshop_service.update_workshop(user, str(workshop["_id"]), WorkshopUpdate(capacity=9))
