from uuid import uuid4
from fastapi.testclient import TestClient
from sqlmodel import Session, select
from app.db.init_db import init_db
from app.db.session import engine
from app.main import app
from app.models.refresh_token import RefreshToken
from app.services.refresh_token_service import LOGOUT_REASON


def _register_and_login(client: TestClient) -> tuple[str, dict]:
    email = f"{uuid4()}@uaic.ro"
    client.post('/register', json={'email': email, 'password': 'secret123'})
    login = client.post('/login', json={'Email': email, 'Password': 'secret123'})
    assert login.status_code == 200
    return email, login.json()


def _record(token: str) -> RefreshToken:
    with Session(engine) as session:
        return session.exec(select(RefreshToken).where(RefreshToken.token == token)).one()


def test_register_login_refresh():
    init_db(drop_all=True)
    with TestClient(app) as client:
        email = f"{uuid4()}@uaic.ro"
        r = client.post('/register', json={'email': email, 'password': 'secret123'})
        assert r.status_code == 201
        assert r.json()['role'] == 'user'
        assert r.json()['isActive'] is True

        login = client.post('/login', json={'email': email, 'password': 'secret123'})
        assert login.status_code == 200
        body = login.json()
        assert set(body) == {'accessToken', 'refreshToken', 'expiresIn'}
        assert body['expiresIn'] == 900

        refresh = client.post('/refresh', json={'refreshToken': body['refreshToken']})
        assert refresh.status_code == 200
        assert refresh.json()['refreshToken'] != body['refreshToken']


def test_register_rejects_duplicate_email():
    init_db(drop_all=True)
    with TestClient(app) as client:
        email = f"{uuid4()}@uaic.ro"
        client.post('/register', json={'email': email, 'password': 'secret123'})
        response = client.post('/register', json={'email': email, 'password': 'secret123'})
        assert response.status_code == 400


def test_login_failures_are_unauthorized():
    init_db(drop_all=True)
    with TestClient(app) as client:
        email = f"{uuid4()}@uaic.ro"
        client.post('/register', json={'email': email, 'password': 'secret123'})

        missing = client.post('/login', json={'email': 'missing@uaic.ro', 'password': 'secret123'})
        wrong = client.post('/login', json={'email': email, 'password': 'wrongpass'})

        assert missing.status_code == 401
        assert wrong.status_code == 401
        assert missing.json() == wrong.json()


def test_login_with_malformed_email_is_unauthorized():
    init_db(drop_all=True)
    with TestClient(app) as client:
        malformed = client.post('/login', json={'Email': 'not-an-email', 'Password': 'whatever'})
        unknown = client.post('/login', json={'email': 'missing@uaic.ro', 'password': 'whatever'})

        assert malformed.status_code == 401
        assert malformed.json() == unknown.json()


def test_refresh_accepts_pascal_and_snake_case_keys():
    init_db(drop_all=True)
    with TestClient(app) as client:
        _, tokens = _register_and_login(client)

        first = client.post('/refresh', json={'RefreshToken': tokens['refreshToken']})
        assert first.status_code == 200

        second = client.post('/refresh', json={'refresh_token': first.json()['refreshToken']})
        assert second.status_code == 200


def test_replayed_refresh_token_kills_session():
    init_db(drop_all=True)
    with TestClient(app) as client:
        _, tokens = _register_and_login(client)
        t0 = tokens['refreshToken']
        t1 = client.post('/refresh', json={'refreshToken': t0}).json()['refreshToken']

        replay = client.post('/refresh', json={'refreshToken': t0})
        assert replay.status_code == 401

        assert 'Token reuse detected' in _record(t1).reason_revoked
        assert client.post('/refresh', json={'refreshToken': t1}).status_code == 401


def test_logout_revokes_family():
    init_db(drop_all=True)
    with TestClient(app) as client:
        _, tokens = _register_and_login(client)

        response = client.post('/logout', json={'refreshToken': tokens['refreshToken']})
        assert response.status_code == 200
        assert response.json() == {'status': 'ok'}
        assert _record(tokens['refreshToken']).reason_revoked == LOGOUT_REASON

        assert client.post('/refresh', json={'refreshToken': tokens['refreshToken']}).status_code == 401
        assert client.post('/logout', json={'refreshToken': 'unknown'}).status_code == 200


def test_logout_all_requires_access_token():
    init_db(drop_all=True)
    with TestClient(app) as client:
        email, first = _register_and_login(client)
        second = client.post('/login', json={'email': email, 'password': 'secret123'}).json()

        assert client.post('/logout-all').status_code in (401, 403)

        headers = {'Authorization': f"Bearer {second['accessToken']}"}
        response = client.post('/logout-all', headers=headers)
        assert response.status_code == 200
        assert response.json() == {'status': 'ok', 'revoked': 2}

        for tokens in (first, second):
            assert client.post('/refresh', json={'refreshToken': tokens['refreshToken']}).status_code == 401


def test_health():
    with TestClient(app) as client:
        assert client.get('/health').json() == {'status': 'ok'}
