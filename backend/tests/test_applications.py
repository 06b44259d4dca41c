import pytest
from sqlmodel import Session

from scholarhub import models, repositories, services
from scholarhub.database import engine
from conftest import register_org, register_user, save_profile, post_scholarship


@pytest.fixture
def org_client(make_client):
    c = make_client()
    c.org = register_org(c, registration_id='R1', name='Acme')
    c.scholarship = post_scholarship(c)
    return c


@pytest.fixture
def applicant(make_client):
    c = make_client()
    c.user = register_user(c)
    save_profile(c)
    return c


def test_apply_without_profile(make_client, org_client):
    c = make_client()
    register_user(c)
    # the profile check comes before any scholarship lookup
    for sid in (org_client.scholarship['id'], 5):
        r = c.post(f'/api/scholarship/{sid}/apply')
        assert r.status_code == 400
        assert r.json()['detail'] == 'Please save your profile before applying.'


def test_apply_and_duplicate(applicant, org_client):
    sid = org_client.scholarship['id']
    r = applicant.post(f'/api/scholarship/{sid}/apply')
    assert r.status_code == 201
    body = r.json()
    assert body['message'] == 'Application submitted'
    assert body['application']['status'] == 'pending'
    assert body['application']['userId'] == applicant.user['id']
    assert body['application']['scholarshipId'] == sid
    again = applicant.post(f'/api/scholarship/{sid}/apply')
    assert again.status_code == 400
    assert again.json()['detail'] == 'Already applied to this scholarship'


def test_apply_unknown_scholarship(applicant):
    r = applicant.post('/api/scholarship/999/apply')
    assert r.status_code == 404


def test_apply_requires_user(org_client, client):
    sid = org_client.scholarship['id']
    assert client.post(f'/api/scholarship/{sid}/apply').status_code == 401
    assert org_client.post(f'/api/scholarship/{sid}/apply').status_code == 401


def test_unique_key_blocks_duplicate_rows(applicant, org_client):
    sid = org_client.scholarship['id']
    uid = applicant.user['id']
    with Session(engine) as db:
        repo = repositories.ApplicationRepository(db)
        repo.create(models.Application(user_id=uid, scholarship_id=sid))
        with pytest.raises(repositories.DuplicateApplicationError):
            repo.create(models.Application(user_id=uid, scholarship_id=sid))


def test_concurrent_duplicate_reported_as_already_applied(applicant, org_client, monkeypatch):
    sid = org_client.scholarship['id']
    uid = applicant.user['id']
    with Session(engine) as db:
        repositories.ApplicationRepository(db).create(models.Application(user_id=uid, scholarship_id=sid))
    # simulate a racing request whose lookup ran before the first insert committed
    monkeypatch.setattr(repositories.ApplicationRepository, 'find', lambda self, u, s: None)
    with Session(engine) as db:
        with pytest.raises(ValueError, match='Already applied'):
            services.ApplicationService(db).apply(uid, sid)


def test_my_applications(applicant, org_client):
    sid = org_client.scholarship['id']
    applicant.post(f'/api/scholarship/{sid}/apply')
    data = applicant.get('/api/my/applications').json()
    assert len(data) == 1
    assert data[0]['scholarship']['id'] == sid


def test_org_applications_forbidden_for_other_org(org_client):
    other_id = org_client.org['id'] + 1
    r = org_client.get(f'/api/org/{other_id}/applications')
    assert r.status_code == 403
    assert r.json()['detail'] == 'Forbidden'


def test_org_applications_requires_org(applicant, org_client):
    r = applicant.get(f"/api/org/{org_client.org['id']}/applications")
    assert r.status_code == 401


def test_org_applications_lists_newest_first(make_client, org_client):
    sid = org_client.scholarship['id']
    second_scholarship = post_scholarship(org_client, name='Second Award')
    applicants = []
    for i, target in enumerate((sid, second_scholarship['id'], sid)):
        c = make_client()
        c.user = register_user(c, email=f'user{i}@example.com', name=f'User {i}')
        save_profile(c, name=f'User {i}')
        assert c.post(f'/api/scholarship/{target}/apply').status_code == 201
        applicants.append(c)

    # applications to another organisation stay out of the list
    rival = make_client()
    register_org(rival, registration_id='R2', name='Rival')
    rival_scholarship = post_scholarship(rival)
    applicants[0].post(f"/api/scholarship/{rival_scholarship['id']}/apply")

    r = org_client.get(f"/api/org/{org_client.org['id']}/applications")
    assert r.status_code == 200
    data = r.json()
    assert [a['user']['id'] for a in data] == [c.user['id'] for c in reversed(applicants)]
    first = data[-1]
    assert first['scholarship']['id'] == sid
    assert first['user']['profiles'][0]['name'] == 'User 0'
    assert 'password_hash' not in first['user']


def test_decision_flow(applicant, org_client):
    sid = org_client.scholarship['id']
    app_id = applicant.post(f'/api/scholarship/{sid}/apply').json()['application']['id']
    r = org_client.post(f'/api/application/{app_id}/decision', json={'decision': 'approved'})
    assert r.status_code == 200
    body = r.json()
    assert body['message'] == 'Application updated'
    assert body['application']['status'] == 'approved'
    assert body['application']['userId'] == applicant.user['id']
    listed = applicant.get('/api/my/applications').json()
    assert listed[0]['status'] == 'approved'
    r = org_client.post(f'/api/application/{app_id}/decision', json={'decision': 'rejected'})
    assert r.json()['application']['status'] == 'rejected'


def test_decision_validation_and_missing(applicant, org_client):
    sid = org_client.scholarship['id']
    app_id = applicant.post(f'/api/scholarship/{sid}/apply').json()['application']['id']
    r = org_client.post(f'/api/application/{app_id}/decision', json={'decision': 'maybe'})
    assert r.status_code == 400
    assert r.json()['detail'] == 'Invalid decision'
    r = org_client.post(f'/api/application/{app_id}/decision', json={})
    assert r.status_code == 400
    r = org_client.post('/api/application/999/decision', json={'decision': 'approved'})
    assert r.status_code == 404


def test_decision_forbidden_for_other_org(make_client, applicant, org_client):
    sid = org_client.scholarship['id']
    app_id = applicant.post(f'/api/scholarship/{sid}/apply').json()['application']['id']
    rival = make_client()
    register_org(rival, registration_id='R2', name='Rival')
    r = rival.post(f'/api/application/{app_id}/decision', json={'decision': 'rejected'})
    assert r.status_code == 403
    with Session(engine) as db:
        assert db.get(models.Application, app_id).status == 'pending'


def test_decision_requires_org(applicant, org_client):
    sid = org_client.scholarship['id']
    app_id = applicant.post(f'/api/scholarship/{sid}/apply').json()['application']['id']
    r = applicant.post(f'/api/application/{app_id}/decision', json={'decision': 'approved'})
    assert r.status_code == 401
