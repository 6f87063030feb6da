"""
Dependency container wiring tests.
"""

import pytest

from clinicdesk.core.container import Container, ServiceNames, build_container
from clinicdesk.core.exceptions import ConfigurationError

from fakes import InMemoryRecordStore, MemorySessionStore


def test_factories_are_cached(container):
    assert container.get(ServiceNames.DISPENSE) is container.get(ServiceNames.DISPENSE)
    assert container.get(ServiceNames.SETTINGS) is container.settings


def test_unknown_service(settings):
    with pytest.raises(ConfigurationError):
        Container(settings).get("billing")


def test_custom_store_needs_auth_service(settings):
    with pytest.raises(ConfigurationError):
        build_container(settings, record_store=InMemoryRecordStore(), session_store=MemorySessionStore())


def test_use_cases_share_one_session(container):
    session = container.get(ServiceNames.SESSION)
    for name in (ServiceNames.REGISTRATION, ServiceNames.DISPENSE, ServiceNames.CHECKOUT):
        assert container.get(name)._session is session
