"""Shared fixtures: an in-memory DNS provider and a background task collector."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from ddns_relay.cache.manager import UpdateCache
from ddns_relay.cache.store import MemoryTTLStore
from ddns_relay.config import Config
from ddns_relay.context import build_context
from ddns_relay.errors import RecordNotFoundError
from ddns_relay.models import DNSRecord, RecordFamily
from ddns_relay.providers.base import BaseDNSProvider
from ddns_relay.server import create_app


class FakeProvider(BaseDNSProvider):
    """In-memory provider recording every call."""

    def __init__(self):
        self.records = {}
        self.get_calls = []
        self.update_calls = []
        self.get_error = None
        self.update_error = None

    @property
    def name(self):
        return "fake"

    def add(self, zone, name, content, record_id="rec-1", family=RecordFamily.A):
        record = DNSRecord(id=record_id, type=family.value, name=name, content=content)
        self.records[(zone, name, family)] = record
        return record

    async def get_record(self, zone, record_name, family, credentials):
        self.get_calls.append((zone, record_name, family, credentials.email))
        if self.get_error is not None:
            raise self.get_error
        try:
            return self.records[(zone, record_name, family)]
        except KeyError:
            msg = f"DNS {family} record '{record_name}' not found in zone"
            raise RecordNotFoundError(msg, details=[]) from None

    async def update_record(self, zone, record, content, credentials):
        self.update_calls.append((zone, record.id, content))
        if self.update_error is not None:
            raise self.update_error
        updated = record.model_copy(update={"content": content})
        self.records[(zone, record.name, RecordFamily(record.type))] = updated
        return updated


class TaskCollector:
    """Scheduler that records background tasks instead of running them."""

    def __init__(self):
        self.tasks = []

    def __call__(self, func, *args):
        self.tasks.append((func, args))

    async def run_all(self):
        for func, args in self.tasks:
            await func(*args)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def cache():
    return UpdateCache(MemoryTTLStore(), max_entries=100, ttl=60)


@pytest.fixture
def scheduler():
    return TaskCollector()


@pytest.fixture
def context(provider):
    return build_context(Config(), provider=provider)


@pytest.fixture
def client(context):
    return TestClient(create_app(context))
