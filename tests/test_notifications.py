"""
Write failures and the notification channel
"""
from database.models import ReportStatus
from services.live_updates import AllReportsQuery
from services.notifications import NotificationCenter
from services.report_service import ReportService


def boom(session, *args, **kwargs):
    raise RuntimeError("database unavailable")


def test_dispatcher_reports_failure(ctx):
    seen = []
    ctx.live.subscribe(AllReportsQuery(), seen.append)

    assert ctx.writer.run('u1', 'report_create', boom, 'Report could not be submitted') is False

    pending = ctx.notifications.drain('u1')
    assert len(pending) == 1
    assert pending[0].level == 'error'
    assert pending[0].title == 'Report could not be submitted'
    assert seen == [[]]


def test_dispatcher_publishes_committed_records(ctx):
    seen = []
    ctx.live.subscribe(AllReportsQuery(), seen.append)
    published = {'id': 'r1', 'userId': 'u1', 'status': 'New', 'reportDateTime': '2026-01-01T00:00:00'}

    assert ctx.writer.run('u1', 'noop', lambda session: [published], 'failed') is True

    assert seen[-1] == [published]
    assert ctx.notifications.drain('u1') == []


def test_failed_report_write_notifies_reporter(client, student, report_payload, monkeypatch):
    monkeypatch.setattr(ReportService, 'persist_report', staticmethod(boom))

    response = client.post('/api/reports', json=report_payload, headers=student.headers)
    assert response.status_code == 202

    body = client.get('/api/notifications', headers=student.headers).json()
    assert body['total'] == 1
    assert body['data'][0]['level'] == 'error'
    assert client.get('/api/reports/mine', headers=student.headers).json()['total'] == 0

    # drained
    assert client.get('/api/notifications', headers=student.headers).json()['total'] == 0


def test_failed_status_write_leaves_status(client, student, admin, file_report, monkeypatch):
    report = file_report(student)
    monkeypatch.setattr(ReportService, 'apply_status_change', staticmethod(boom))

    response = client.patch(
        f"/api/reports/{report['id']}/status", json={'status': 'Resolved'}, headers=admin.headers
    )
    assert response.status_code == 202

    assert client.get('/api/notifications', headers=admin.headers).json()['data'][0]['title'] == 'Status update failed'
    detail = client.get(f"/api/reports/{report['id']}", headers=admin.headers).json()
    assert detail['data']['status'] == ReportStatus.NEW.value


def test_notification_stream_delivers_failures(client, student, report_payload, monkeypatch):
    monkeypatch.setattr(ReportService, 'persist_report', staticmethod(boom))

    with client.websocket_connect(f'/ws/notifications?token={student.token}') as ws:
        client.post('/api/reports', json=report_payload, headers=student.headers)
        message = ws.receive_json()

    assert message['type'] == 'notification'
    assert message['data']['level'] == 'error'


def test_backlog_is_bounded():
    center = NotificationCenter(backlog=2)
    for i in range(3):
        center.notify('u1', 'error', f'failure {i}')

    assert [n.title for n in center.drain('u1')] == ['failure 1', 'failure 2']


def test_listener_receives_backlog_first():
    center = NotificationCenter()
    center.notify('u1', 'error', 'earlier')
    received = []

    token = center.listen('u1', received.append)
    center.notify('u1', 'info', 'later')
    center.unlisten('u1', token)
    center.notify('u1', 'info', 'after unlisten')

    assert [n.title for n in received] == ['earlier', 'later']
    assert [n.title for n in center.drain('u1')] == ['after unlisten']
