from dataclasses import dataclass, field
from typing import Dict

import pytest
from flask import Flask
from flask.testing import FlaskClient

from pms import create_app
from pms.extensions import db
from pms.models import User
from pms.seeds import seed_default_users
from tests.factories import DEFAULT_PASSWORD, make_user


@dataclass
class HarnessContext:
    """Everything an API test needs, handed over explicitly per test."""
    client: FlaskClient
    tokens: Dict[str, str] = field(default_factory=dict)
    user_ids: Dict[str, int] = field(default_factory=dict)

    def headers(self, who='admin'):
        return {'Authorization': f'Bearer {self.tokens[who]}'}

    def get(self, url, who='admin', **kwargs):
        return self.client.get(url, headers=self.headers(who), **kwargs)

    def post(self, url, json=None, who='admin'):
        return self.client.post(url, json=json, headers=self.headers(who))

    def put(self, url, json=None, who='admin'):
        return self.client.put(url, json=json, headers=self.headers(who))

    def delete(self, url, who='admin'):
        return self.client.delete(url, headers=self.headers(who))


def login(client, username, password=DEFAULT_PASSWORD):
    resp = client.post('/api/users/login', json={'username': username, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()['token']


@pytest.fixture
def app() -> Flask:
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app: Flask) -> FlaskClient:
    return app.test_client()


@pytest.fixture
def harness(app: Flask, client: FlaskClient) -> HarnessContext:
    """
    Seeded accounts: the bootstrap admin, an assistant, a plain user and two
    doctors (doctors are user accounts referenced by appointments).
    """
    seed_default_users()
    make_user('assistant', role='assistant')
    make_user('viewer', role='user')
    make_user('drsmith', role='user')
    make_user('drjones', role='user')

    ctx = HarnessContext(client=client)
    ctx.tokens['admin'] = login(client, app.config['DEFAULT_ADMIN_USERNAME'], app.config['DEFAULT_ADMIN_PASSWORD'])
    ctx.tokens['assistant'] = login(client, 'assistant')
    ctx.tokens['user'] = login(client, 'viewer')

    for user in User.query.all():
        ctx.user_ids[user.username] = user.id
    ctx.user_ids['admin'] = ctx.user_ids[app.config['DEFAULT_ADMIN_USERNAME']]
    return ctx
