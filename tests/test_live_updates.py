"""
Live query hub and WebSocket streams
"""
import threading

import pytest
from starlette.websockets import WebSocketDisconnect

from services.live_updates import (
    AllReportsQuery, LiveQueryHub, OwnReportsQuery, SingleReportQuery, merge_record
)


def record(report_id, user_id='u1', status='New', when='2026-01-01T10:00:00'):
    return {'id': report_id, 'userId': user_id, 'status': status, 'reportDateTime': when}


class Collector:
    def __init__(self):
        self.snapshots = []

    def __call__(self, snapshot):
        self.snapshots.append(snapshot)

    @property
    def last(self):
        return self.snapshots[-1]


def test_subscribe_delivers_initial_snapshot():
    hub = LiveQueryHub()
    seen = Collector()

    hub.subscribe(OwnReportsQuery('u1'), seen, loader=lambda: [record('a'), record('b', user_id='u2')])

    assert [r['id'] for r in seen.last] == ['a']


def test_publish_reaches_matching_subscriptions_only():
    hub = LiveQueryHub()
    mine, theirs, everything = Collector(), Collector(), Collector()
    hub.subscribe(OwnReportsQuery('u1'), mine)
    hub.subscribe(OwnReportsQuery('u2'), theirs)
    hub.subscribe(AllReportsQuery(), everything)

    notified = hub.publish(record('a', user_id='u1'))

    assert notified == 2
    assert [r['id'] for r in mine.last] == ['a']
    assert theirs.snapshots == [[]]
    assert [r['id'] for r in everything.last] == ['a']


def test_snapshots_are_newest_first():
    hub = LiveQueryHub()
    seen = Collector()
    hub.subscribe(AllReportsQuery(), seen)

    hub.publish(record('old', when='2026-01-01T08:00:00'))
    hub.publish(record('new', when='2026-01-02T08:00:00'))

    assert [r['id'] for r in seen.last] == ['new', 'old']


def test_out_of_order_publication_never_moves_status_back():
    assert merge_record(record('a', status='Resolved'), record('a', status='Acknowledged'))['status'] == 'Resolved'

    hub = LiveQueryHub()
    seen = Collector()
    hub.subscribe(SingleReportQuery('a'), seen)
    hub.publish(record('a', status='Resolved'))
    hub.publish(record('a', status='Acknowledged'))

    assert seen.last['status'] == 'Resolved'


def test_single_report_snapshot_is_none_until_it_exists():
    hub = LiveQueryHub()
    seen = Collector()
    hub.subscribe(SingleReportQuery('a'), seen, loader=lambda: [])

    assert seen.snapshots == [None]
    hub.publish(record('a'))
    assert seen.last['id'] == 'a'


def test_owner_restricted_single_report_ignores_foreign_reports():
    hub = LiveQueryHub()
    seen = Collector()
    hub.subscribe(SingleReportQuery('a', owner_id='u1'), seen)

    assert hub.publish(record('a', user_id='u2')) == 0
    assert seen.snapshots == [None]


def test_unsubscribe_stops_delivery():
    hub = LiveQueryHub()
    seen = Collector()
    subscription = hub.subscribe(AllReportsQuery(), seen)

    hub.unsubscribe(subscription)
    hub.publish(record('a'))

    assert seen.snapshots == [[]]
    assert hub.subscriber_count() == 0


def test_failing_subscriber_does_not_block_others():
    hub = LiveQueryHub()
    seen = Collector()

    def broken(snapshot):
        raise RuntimeError("client went away")

    hub.subscribe(AllReportsQuery(), broken)
    hub.subscribe(AllReportsQuery(), seen)

    assert hub.publish(record('a')) == 2
    assert [r['id'] for r in seen.last] == ['a']


def test_changes_during_initial_load_are_folded_into_first_snapshot():
    hub = LiveQueryHub()
    seen = Collector()

    def loader():
        # committed while the initial read is in progress
        hub.publish(record('c', when='2026-01-03T10:00:00'))
        hub.publish(record('a', status='Acknowledged'))
        return [
            record('a'),
            record('b', when='2026-01-02T10:00:00'),
            record('c', when='2026-01-03T10:00:00'),
        ]

    hub.subscribe(AllReportsQuery(), seen, loader=loader)

    assert len(seen.snapshots) == 1
    assert [r['id'] for r in seen.last] == ['c', 'b', 'a']
    assert seen.last[2]['status'] == 'Acknowledged'


def test_stale_snapshot_is_dropped_after_a_newer_one():
    hub = LiveQueryHub()
    seen = Collector()
    hub.subscribe(SingleReportQuery('a'), seen, loader=lambda: [record('a')])

    deliver = hub._deliver
    built = threading.Event()
    resume = threading.Event()

    def slow_deliver(subscription, sequence, snapshot):
        if snapshot and snapshot['status'] == 'Acknowledged':
            built.set()
            resume.wait(timeout=5)
        deliver(subscription, sequence, snapshot)

    hub._deliver = slow_deliver
    slow = threading.Thread(target=hub.publish, args=(record('a', status='Acknowledged'),))
    slow.start()
    assert built.wait(timeout=5)

    hub.publish(record('a', status='Resolved'))
    resume.set()
    slow.join(timeout=5)

    assert [s['status'] for s in seen.snapshots] == ['New', 'Resolved']


def test_failed_initial_load_removes_subscription():
    hub = LiveQueryHub()

    def loader():
        raise RuntimeError("database unavailable")

    with pytest.raises(RuntimeError):
        hub.subscribe(AllReportsQuery(), Collector(), loader=loader)
    assert hub.subscriber_count() == 0


# WebSocket streams

def test_own_reports_stream(client, student, file_report):
    existing = file_report(student)

    with client.websocket_connect(f'/ws/reports/mine?token={student.token}') as ws:
        initial = ws.receive_json()
        assert initial['type'] == 'snapshot'
        assert initial['view'] == 'own_reports'
        assert [r['id'] for r in initial['data']] == [existing['id']]

        created = file_report(student, incidentType='Crime')

        update = ws.receive_json()
        assert [r['id'] for r in update['data']] == [created['id'], existing['id']]


def test_single_report_stream_follows_status(client, student, admin, file_report):
    report = file_report(student)

    with client.websocket_connect(f"/ws/reports/{report['id']}?token={student.token}") as ws:
        assert ws.receive_json()['data']['status'] == 'New'

        client.patch(
            f"/api/reports/{report['id']}/status", json={'status': 'Acknowledged'}, headers=admin.headers
        )

        update = ws.receive_json()
        assert update['view'] == 'report'
        assert update['data']['status'] == 'Acknowledged'


def test_foreign_single_report_stream_is_empty(client, student, other_student, file_report):
    report = file_report(student)

    with client.websocket_connect(f"/ws/reports/{report['id']}?token={other_student.token}") as ws:
        assert ws.receive_json()['data'] is None


def test_stream_requires_token(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect('/ws/reports/mine?token=bogus') as ws:
            ws.receive_json()
    assert exc.value.code == 4001


def test_all_reports_stream_is_admin_only(client, student, admin, file_report):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect(f'/ws/reports/all?token={student.token}') as ws:
            ws.receive_json()
    assert exc.value.code == 4003

    report = file_report(student)
    with client.websocket_connect(f'/ws/reports/all?token={admin.token}') as ws:
        initial = ws.receive_json()
        assert initial['view'] == 'all_reports'
        assert [r['id'] for r in initial['data']] == [report['id']]
