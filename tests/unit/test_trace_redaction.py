# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.
#
# VerifyNews Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Unit tests for trace redaction and the local-only trace sink.
"""

import json

import pytest
from verifynews_core.runtime_config import EngineFeatureFlags, EngineRuntimeConfig
from verifynews_core.utils.trace import Trace, _redact_text, _sanitize, trace_enabled


class TestSecretRedaction:

    @pytest.mark.parametrize("input_text,leaked", [
        ("https://generativelanguage.googleapis.com/v1beta/models/x:generateContent?key=AIzaSECRET", "AIzaSECRET"),
        ("GET /search?q=moon&api_key=tvly-SECRET", "tvly-SECRET"),
        ("Authorization: Bearer gsk_SECRET", "gsk_SECRET"),
        ("provider said: invalid key tvly-abcdef123456", "tvly-abcdef123456"),
    ])
    def test_tokens_are_masked(self, input_text: str, leaked: str):
        result = _redact_text(input_text)
        assert leaked not in result
        assert "***" in result

    def test_secret_keys_masked_in_dicts(self):
        out = _sanitize({"gemini_api_key": "abc", "headers": {"Authorization": "Bearer x"}, "query": "moon"})
        assert out["gemini_api_key"] == "***"
        assert out["headers"]["Authorization"] == "***"
        assert out["query"] == "moon"

    def test_media_payloads_are_not_written(self):
        out = _sanitize({"mediaData": "iVBORw0KGgo" * 10, "mimeType": "image/png"})
        assert out == {"mediaData": "<base64:110 chars>", "mimeType": "image/png"}

    def test_long_strings_are_summarized(self):
        out = _sanitize("x" * 5000)
        assert out["len"] == 5000
        assert len(out["sha256"]) == 64


class TestTraceSink:

    def test_disabled_outside_local_runs(self, monkeypatch):
        monkeypatch.delenv("VERIFYNEWS_ENV", raising=False)
        monkeypatch.delenv("ENV", raising=False)
        ctx = Trace.start("t-prod", runtime=EngineRuntimeConfig())
        try:
            assert ctx.enabled is False
            assert trace_enabled() is False
        finally:
            Trace.stop()

    def test_writes_jsonl_when_local(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VERIFYNEWS_ENV", "local")
        monkeypatch.chdir(tmp_path)
        Trace.start("t-local", runtime=EngineRuntimeConfig())
        Trace.event("cache.hit", {"namespace": "verify-news-text-cache"})
        Trace.stop()

        lines = (tmp_path / "data" / "trace" / "t-local.jsonl").read_text(encoding="utf-8").splitlines()
        events = [json.loads(line)["event"] for line in lines]
        assert events == ["trace.start", "cache.hit", "trace.stop"]

    def test_feature_flag_disables_trace(self, monkeypatch):
        monkeypatch.setenv("VERIFYNEWS_ENV", "local")
        runtime = EngineRuntimeConfig(features=EngineFeatureFlags(trace_enabled=False))
        ctx = Trace.start("t-off", runtime=runtime)
        Trace.stop()
        assert ctx.enabled is False
