"""
Profile endpoints
"""


def test_get_own_profile(client, student):
    response = client.get('/api/profile', headers=student.headers)

    assert response.status_code == 200
    data = response.json()
    assert data['id'] == student.id
    assert data['contactName'] == student.name
    assert data['userType'] == 'student'
    assert data['isComplete'] is True


def test_partial_update_preserves_other_fields(client, student):
    before = client.get('/api/profile', headers=student.headers).json()

    response = client.patch(
        '/api/profile', json={'contactPhoneNumber': '0821234567'}, headers=student.headers
    )

    assert response.status_code == 202
    assert response.json()['contactPhoneNumber'] == '0821234567'

    after = client.get('/api/profile', headers=student.headers).json()
    assert after['contactPhoneNumber'] == '0821234567'
    for field in ('contactName', 'emergencyContactName', 'emergencyContactPhoneNumber', 'studentNumber'):
        assert after[field] == before[field]


def test_put_merges_like_patch(client, student):
    before = client.get('/api/profile', headers=student.headers).json()

    response = client.put(
        '/api/profile', json={'medicalInformation': 'Asthma, carries an inhaler'}, headers=student.headers
    )

    assert response.status_code == 202
    after = client.get('/api/profile', headers=student.headers).json()
    assert after['medicalInformation'] == 'Asthma, carries an inhaler'
    assert after['contactPhoneNumber'] == before['contactPhoneNumber']


def test_user_type_cannot_be_changed(client, student):
    response = client.patch('/api/profile', json={'userType': 'admin'}, headers=student.headers)

    assert response.status_code == 422
    assert response.json()['detail'] == [{'field': 'userType', 'message': 'This field cannot be changed'}]
    assert client.get('/api/profile', headers=student.headers).json()['userType'] == 'student'


def test_short_values_are_rejected(client, student):
    response = client.patch(
        '/api/profile',
        json={'contactName': 'A', 'emergencyContactPhoneNumber': '12345'},
        headers=student.headers,
    )

    assert response.status_code == 422
    fields = {error['field'] for error in response.json()['detail']}
    assert fields == {'contactName', 'emergencyContactPhoneNumber'}


def test_empty_update_changes_nothing(client, student):
    before = client.get('/api/profile', headers=student.headers).json()

    response = client.patch('/api/profile', json={}, headers=student.headers)

    assert response.status_code == 200
    assert response.json() == before


def test_profile_requires_authentication(client):
    assert client.get('/api/profile').status_code == 401
