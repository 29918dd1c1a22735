from datetime import datetime

from conftest import headers_for

from opsboard.domain.scheduling.repository import CalendarRepository
from opsboard.domain.tasks.repository import TaskRepository
from opsboard.models import Contract, Invoice


def seed(db, workspace):
    tenant_id = workspace["tenant"].id
    owner_id = workspace["owner"].id

    CalendarRepository.create_event(
        db,
        tenant_id,
        user_id=owner_id,
        title="Kickoff",
        start_time=datetime(2030, 1, 8, 10, 0),
        end_time=datetime(2030, 1, 8, 11, 0),
    )
    TaskRepository.create_task(
        db, tenant_id, title="Draft proposal", assigned_to=owner_id, due_date=datetime(2030, 1, 7, 17, 0)
    )
    TaskRepository.create_task(
        db,
        tenant_id,
        title="Done already",
        assigned_to=owner_id,
        status="completed",
        due_date=datetime(2030, 1, 7, 12, 0),
    )
    TaskRepository.create_task(
        db,
        tenant_id,
        title="Meeting shadow",
        assigned_to=owner_id,
        is_booking_shadow=True,
        due_date=datetime(2030, 1, 7, 13, 0),
    )
    TaskRepository.create_task(
        db, tenant_id, title="Member work", assigned_to=workspace["member"].id, due_date=datetime(2030, 1, 7, 9, 0)
    )
    db.add_all(
        [
            Invoice(tenant_id=tenant_id, invoice_number="INV-7", title="January retainer", amount=1200.0, status="sent", due_date=datetime(2030, 1, 9, 0, 0)),
            Invoice(tenant_id=tenant_id, title="Paid one", amount=50.0, status="paid", due_date=datetime(2030, 1, 9, 0, 0)),
            Contract(tenant_id=tenant_id, title="Website build", payment_status="partial", end_date=datetime(2030, 1, 10, 0, 0)),
            Contract(tenant_id=tenant_id, title="Settled", payment_status="paid", end_date=datetime(2030, 1, 10, 0, 0)),
            Invoice(tenant_id=tenant_id, title="Next month", amount=10.0, status="sent", due_date=datetime(2030, 2, 9, 0, 0)),
        ]
    )
    db.commit()


def test_timeline_merges_sources_in_order(client, db, workspace):
    seed(db, workspace)

    response = client.get(
        "/timeline",
        params={"start": "2030-01-07T00:00:00", "end": "2030-01-14T00:00:00"},
        headers=headers_for(workspace),
    )

    assert response.status_code == 200
    items = response.json()["items"]
    assert [(i["kind"], i["title"]) for i in items] == [
        ("task", "Draft proposal"),
        ("event", "Kickoff"),
        ("invoice", "Invoice due: INV-7"),
        ("contract", "Payment due: Website build"),
    ]
    starts = [i["start"] for i in items]
    assert starts == sorted(starts)


def test_timeline_for_another_participant(client, db, workspace):
    seed(db, workspace)

    response = client.get(
        "/timeline",
        params={
            "participant_id": workspace["member"].id,
            "start": "2030-01-07T00:00:00",
            "end": "2030-01-08T00:00:00",
        },
        headers=headers_for(workspace),
    )

    titles = [i["title"] for i in response.json()["items"]]
    assert titles == ["Member work"]


def test_timeline_rejects_inverted_range(client, workspace):
    response = client.get(
        "/timeline",
        params={"start": "2030-01-08T00:00:00", "end": "2030-01-07T00:00:00"},
        headers=headers_for(workspace),
    )
    assert response.status_code == 400


def test_timeline_unknown_participant(client, workspace):
    response = client.get(
        "/timeline", params={"participant_id": workspace["outsider"].id}, headers=headers_for(workspace)
    )
    assert response.status_code == 404
