import asyncio
from datetime import datetime, timedelta

from services.notification_service.notifier import Notifier
from services.notification_service.repository import NotificationRepository
from services.notification_service.service import DeadlineSweeper, NotificationService
from services.order_service.service import OrderService
from shared.events import OrderCreated


def _messages(api, user):
    return [n["message"] for n in api.notifications(user)]


def test_mark_all_read_is_idempotent(api, cast):
    admin = cast["admin"]
    api.create_order(cast["student"], title="One")
    api.create_order(cast["student"], title="Two")
    assert api.get(admin, "/notifications/unread-count").json() == {"count": 2}
    assert all(not n["is_read"] for n in api.notifications(admin))

    for _ in range(2):
        resp = api.post(admin, "/notifications/read")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert all(n["is_read"] for n in api.notifications(admin))
    assert api.get(admin, "/notifications/unread-count").json() == {"count": 0}


def test_mark_read_only_touches_own_notifications(api, cast):
    other_admin = api.register("Otto Admin", "admin")
    api.create_order(cast["student"])
    api.post(cast["admin"], "/notifications/read")
    assert all(not n["is_read"] for n in api.notifications(other_admin))


def test_list_is_newest_first_and_capped_at_twenty(api, cast):
    for i in range(25):
        api.create_order(cast["student"], title=f"Order {i}")
    notices = api.notifications(cast["admin"])
    assert len(notices) == 20
    assert notices[0]["message"].endswith("Order 24")
    assert notices[-1]["message"].endswith("Order 5")


def test_assign_notifies_exactly_three_parties(api, cast):
    admin, student, writer, delivery = (cast[r] for r in ("admin", "student", "writer", "delivery"))
    order_id = api.create_order(student, title="Essay")["id"]
    api.post(admin, "/notifications/read")
    admin_before = len(api.notifications(admin))

    assert api.assign(admin, order_id, writer, delivery).status_code == 200

    assert _messages(api, student) == [f'Your order #{order_id} "Essay" has been assigned to a writer.']
    assert _messages(api, writer) == [f"You have been assigned a new writing task: #{order_id}"]
    assert _messages(api, delivery) == [f"New delivery assigned: #{order_id}"]
    assert len(api.notifications(admin)) == admin_before


def test_deadline_sweep_deduplicates(api, cast):
    student = cast["student"]
    due = (datetime.utcnow() + timedelta(hours=3)).replace(microsecond=0)
    order_id = api.create_order(student, title="Urgent", due_date=due.isoformat())["id"]
    api.create_order(student, title="Later", due_date=(due + timedelta(days=3)).isoformat())

    expected = f"Deadline approaching for order #{order_id}: Urgent (Due: {due:%Y-%m-%d %H:%M:%S})"
    for _ in range(3):
        assert _messages(api, student) == [expected]


def test_deadline_sweep_covers_writer_and_skips_delivered(api, cast):
    admin, student, writer, delivery = (cast[r] for r in ("admin", "student", "writer", "delivery"))
    due = (datetime.utcnow() + timedelta(hours=5)).isoformat()
    order_id = api.create_order(student, title="Thesis", due_date=due)["id"]
    api.assign(admin, order_id, writer, delivery)

    writer_messages = _messages(api, writer)
    assert sum(m.startswith(f"Deadline approaching for order #{order_id}") for m in writer_messages) == 1
    # delivery agents are not part of the sweep
    assert not any(m.startswith("Deadline") for m in _messages(api, delivery))

    for who, status in ((writer, "writing"), (writer, "ready_for_delivery"),
                        (delivery, "out_for_delivery"), (delivery, "delivered")):
        api.set_status(who, order_id, status)
    other_due = (datetime.utcnow() + timedelta(hours=2)).isoformat()
    api.put(admin, f"/admin/orders/{order_id}", json={
        "title": "Thesis v2", "status": "delivered", "page_count": 3,
        "price_per_page": 40, "due_date": other_due,
    })
    assert not any("Thesis v2" in m for m in _messages(api, student))


def test_comment_fan_out(api, cast):
    admin, student, writer, delivery = (cast[r] for r in ("admin", "student", "writer", "delivery"))
    order_id = api.create_order(student, title="Essay")["id"]
    api.assign(admin, order_id, writer, delivery)
    text = "Please make sure the bibliography follows APA formatting, thanks!"

    assert api.post(student, f"/orders/{order_id}/comments", json={"text": text}).status_code == 200
    expected = f'New message on order #{order_id} "Essay": {text[:50]}...'
    assert expected in _messages(api, writer)
    assert expected in _messages(api, admin)
    assert expected not in _messages(api, student)
    assert expected not in _messages(api, delivery)

    api.post(admin, f"/orders/{order_id}/comments", json={"text": "Noted."})
    admin_note = f'New message on order #{order_id} "Essay": Noted....'
    assert admin_note in _messages(api, student)
    assert admin_note in _messages(api, writer)
    assert admin_note not in _messages(api, admin)


def test_comment_on_missing_order_or_blank_text(api, cast):
    assert api.post(cast["student"], "/orders/999/comments", json={"text": "hi"}).status_code == 404
    order_id = api.create_order(cast["student"])["id"]
    assert api.post(cast["student"], f"/orders/{order_id}/comments", json={"text": ""}).status_code == 422
    assert api.post(cast["student"], f"/orders/{order_id}/comments", json={"text": "  "}).status_code == 422


def test_comments_listed_oldest_first_with_authors(api, cast):
    student, admin = cast["student"], cast["admin"]
    order_id = api.create_order(student)["id"]
    api.post(student, f"/orders/{order_id}/comments", json={"text": "first"})
    api.post(admin, f"/orders/{order_id}/comments", json={"text": "second"})

    comments = api.get(student, f"/orders/{order_id}").json()["comments"]
    assert [(c["text"], c["user_name"], c["user_role"]) for c in comments] == [
        ("first", "Sam Student", "student"),
        ("second", "Ada Admin", "admin"),
    ]
    assert api.get(student, f"/orders/{order_id}/comments").json() == comments


async def test_sweep_service_and_background_sweeper(db, database, make_user):
    student = await make_user("Sam Student")
    writer = await make_user("Wendy Writer", "writer")
    now = datetime(2026, 3, 1, 9, 0, 0)
    order = await OrderService.create_order(
        db, student.id, "Lab report", page_count=2, due_date=now + timedelta(hours=6),
    )
    order.writer_id = writer.id
    await db.commit()

    created = await NotificationService.sweep_deadlines(db, student.id, now=now)
    await db.commit()
    assert [n.message for n in created] == [
        f"Deadline approaching for order #{order.id}: Lab report (Due: 2026-03-01 15:00:00)"
    ]
    assert await NotificationService.sweep_deadlines(db, student.id, now=now) == []

    # outside the 24 hour window nothing is produced
    assert await NotificationService.sweep_deadlines(db, writer.id, now=now - timedelta(days=2)) == []

    await db.commit()
    sweeper = DeadlineSweeper(database.sessionmaker, interval_seconds=60)
    assert await sweeper.run_once(now=now) == 1  # only the writer was missing a notice
    assert await sweeper.run_once(now=now) == 0

    notices = await NotificationRepository.recent_for_user(db, writer.id)
    assert len(notices) == 1


async def test_notify_writes_an_unread_notice(db, make_user):
    user = await make_user("Sam Student")
    await NotificationService.notify(db, user.id, "Welcome aboard")

    [notice] = await NotificationRepository.recent_for_user(db, user.id)
    assert notice.message == "Welcome aboard"
    assert notice.is_read is False
    assert await NotificationService.unread_count(db, user.id) == 1
    assert await NotificationService.mark_all_read(db, user.id) == 1
    assert await NotificationService.unread_count(db, user.id) == 0


async def test_concurrent_sweeps_store_a_deadline_notice_once(db, database, make_user):
    student = await make_user("Sam Student")
    now = datetime(2026, 3, 1, 9, 0, 0)
    order = await OrderService.create_order(db, student.id, "Lab", due_date=now + timedelta(hours=6))
    sweeper = DeadlineSweeper(database.sessionmaker, interval_seconds=60)

    async def read_notifications():
        async with database.sessionmaker() as session:
            return await NotificationService.list_for_user(session, student.id, now=now)

    await asyncio.gather(read_notifications(), read_notifications(), sweeper.run_once(now=now))

    notices = await NotificationRepository.recent_for_user(db, student.id)
    assert [n.message for n in notices] == [
        f"Deadline approaching for order #{order.id}: Lab (Due: 2026-03-01 15:00:00)"
    ]


async def test_sweeper_skips_a_tick_while_a_run_is_in_flight(db, database, make_user):
    student = await make_user("Sam Student")
    now = datetime(2026, 3, 1, 9, 0, 0)
    await OrderService.create_order(db, student.id, "Lab", due_date=now + timedelta(hours=6))
    sweeper = DeadlineSweeper(database.sessionmaker, interval_seconds=60)

    # the first run holds the lock across its database awaits
    assert await asyncio.gather(sweeper.run_once(now=now), sweeper.run_once(now=now)) == [1, 0]
    assert await sweeper.run_once(now=now) == 0


async def test_dispatch_writes_one_row_per_recipient(db, make_user):
    first = await make_user("Ada Admin", "admin")
    second = await make_user("Otto Admin", "admin")
    await make_user("Sam Student")

    created = await Notifier.dispatch(db, [OrderCreated(order_id=7, title="Essay")])
    await db.commit()

    assert sorted(n.user_id for n in created) == [first.id, second.id]
    assert {n.message for n in created} == {"New order #7 received: Essay"}
