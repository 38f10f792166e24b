import pytest

from pms import create_app
from pms.config import ProductionConfig, TestingConfig, config
from pms.models import User
from pms.seeds import seed_default_users


def test_production_refuses_default_secret(monkeypatch):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', 'dev-secret-key-change-in-production')
    with pytest.raises(ValueError):
        create_app('production')


def test_production_refuses_missing_secret(monkeypatch):
    monkeypatch.setattr(ProductionConfig, 'SECRET_KEY', None)
    with pytest.raises(ValueError):
        ProductionConfig.validate()


def test_testing_config_is_selected_by_name(app):
    assert config['testing'] is TestingConfig
    assert app.testing
    assert app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite')


def test_seeding_is_idempotent(app):
    assert seed_default_users() == [app.config['DEFAULT_ADMIN_USERNAME']]
    assert seed_default_users() == []
    assert User.query.filter_by(role='admin').count() == 1


def test_seed_users_command(app):
    result = app.test_cli_runner().invoke(args=['seed-users'])
    assert result.exit_code == 0
    assert 'Created 1 user(s)' in result.output
    assert User.query.filter_by(username=app.config['DEFAULT_ADMIN_USERNAME']).one().is_admin()
