"""
backend/tests/test_database_credentials.py

Purpose:
    Store credential decoding (base64 or raw JSON) and the "disabled with a
    warning" startup path when nothing usable is configured.
"""

from __future__ import annotations

import base64
import json
import logging

import pytest

import oddscron.database as database_module
from oddscron.database import CredentialError, connect_db, decode_credential, resolve_connection

_CREDENTIAL = {"uri": "mongodb://cache.internal:27017", "database": "odds"}


def test_decode_base64_credential():
    raw = base64.b64encode(json.dumps(_CREDENTIAL).encode()).decode()
    assert decode_credential(raw) == _CREDENTIAL


def test_decode_raw_json_credential():
    assert decode_credential(json.dumps(_CREDENTIAL)) == _CREDENTIAL


def test_decode_empty_credential_is_none():
    assert decode_credential("") is None
    assert decode_credential("   ") is None


def test_decode_garbage_credential_raises():
    with pytest.raises(CredentialError):
        decode_credential("definitely not a credential")


def test_decode_non_object_json_raises():
    raw = base64.b64encode(b"{not json").decode()
    with pytest.raises(CredentialError):
        decode_credential(raw)


def test_resolve_connection_prefers_credential(cfg):
    cfg.FIREBASE_SERVICE_ACCOUNT_BASE64 = json.dumps({"mongo_uri": "mongodb://a", "db": "x"})
    cfg.MONGO_URI = "mongodb://fallback"
    assert resolve_connection(cfg) == ("mongodb://a", "x")


def test_resolve_connection_falls_back_to_mongo_uri(cfg):
    cfg.FIREBASE_SERVICE_ACCOUNT_BASE64 = ""
    cfg.MONGO_URI = "mongodb://fallback"
    cfg.MONGO_DB = "oddscron"
    assert resolve_connection(cfg) == ("mongodb://fallback", "oddscron")


def test_resolve_connection_requires_uri_in_credential(cfg):
    cfg.FIREBASE_SERVICE_ACCOUNT_BASE64 = json.dumps({"project_id": "legacy"})
    with pytest.raises(CredentialError):
        resolve_connection(cfg)


@pytest.mark.asyncio
async def test_connect_db_disabled_when_nothing_configured(cfg, monkeypatch, caplog):
    cfg.FIREBASE_SERVICE_ACCOUNT_BASE64 = ""
    cfg.MONGO_URI = ""
    monkeypatch.setattr(database_module, "db", None, raising=False)

    with caplog.at_level(logging.WARNING, logger="oddscron.database"):
        assert await connect_db(cfg) is False

    assert database_module.get_db() is None
    assert "document store disabled" in caplog.text


@pytest.mark.asyncio
async def test_connect_db_disabled_on_bad_credential(cfg, monkeypatch, caplog):
    cfg.FIREBASE_SERVICE_ACCOUNT_BASE64 = "%%%"
    monkeypatch.setattr(database_module, "db", None, raising=False)

    with caplog.at_level(logging.WARNING, logger="oddscron.database"):
        assert await connect_db(cfg) is False

    assert database_module.get_db() is None
    assert "unusable" in caplog.text
