"""
NoteX Backend — Configuration Loader Tests
===========================================

What:  Tests for ConfigurationLoader.ensure_ready().

What we test:
    ✅ First call fetches the four secrets and builds the Runtime
    ✅ Later calls reuse the Runtime without touching Secret Manager
    ✅ Concurrent cold-start callers share one setup run
    ✅ Failures leave the loader un-ready and the next call retries
"""

import asyncio

import pytest

from notex.exceptions import ConfigurationError, ErrorKind


class TestEnsureReady:

    @pytest.mark.asyncio
    async def test_first_call_builds_runtime(self, loader, secret_source, blob_storage):
        runtime = await loader.ensure_ready()

        assert loader.ready
        assert runtime.config.db_user == "notex"
        assert runtime.config.db_name == "notex"
        assert runtime.config.db_host == "db.test.internal"
        assert runtime.config.db_port == 5432
        assert runtime.config.export_bucket == "notex-backups"
        assert runtime.storage is blob_storage
        assert secret_source.calls == 4
        assert sorted(secret_source.names) == sorted(
            f"projects/fluid-house-477701-v2/secrets/{s}/versions/latest"
            for s in ("db-user", "db-pass", "db-name", "backup-bucket")
        )
        await loader.aclose()

    @pytest.mark.asyncio
    async def test_later_calls_are_no_ops(self, loader, secret_source):
        first = await loader.ensure_ready()
        second = await loader.ensure_ready()

        assert first is second
        assert secret_source.calls == 4
        await loader.aclose()

    @pytest.mark.asyncio
    async def test_schema_created(self, loader):
        from sqlalchemy import inspect

        runtime = await loader.ensure_ready()
        async with runtime.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

        assert "notes" in tables
        await loader.aclose()

    @pytest.mark.asyncio
    async def test_password_not_in_repr(self, loader):
        runtime = await loader.ensure_ready()
        assert "s3cret" not in repr(runtime.config)
        await loader.aclose()

    def test_runtime_before_ready_raises(self, loader):
        with pytest.raises(ConfigurationError):
            loader.runtime


class TestConcurrentColdStart:

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(
        self, make_loader, make_secret_source, engine_factory
    ):
        source = make_secret_source(delay=0.02)
        engines = []

        def counting_engine_factory(config, settings):
            engine = engine_factory(config, settings)
            engines.append(engine)
            return engine

        loader = make_loader(source, engine_factory=counting_engine_factory)

        runtimes = await asyncio.gather(*(loader.ensure_ready() for _ in range(10)))

        assert all(r is runtimes[0] for r in runtimes)
        assert source.calls == 4
        assert len(engines) == 1
        await loader.aclose()


class TestFailureAndRetry:

    @pytest.mark.asyncio
    async def test_secret_failure_leaves_loader_cold(self, make_loader, make_secret_source):
        source = make_secret_source()
        source.fail = True
        loader = make_loader(source)

        with pytest.raises(ConfigurationError) as exc_info:
            await loader.ensure_ready()

        assert exc_info.value.kind is ErrorKind.CONFIGURATION
        assert exc_info.value.message == "Internal server error"
        assert not loader.ready

        source.fail = False
        runtime = await loader.ensure_ready()

        assert loader.ready
        assert runtime.config.export_bucket == "notex-backups"
        assert source.calls == 8
        await loader.aclose()

    @pytest.mark.asyncio
    async def test_missing_host(self, make_loader, make_secret_source, monkeypatch):
        monkeypatch.delenv("DB_HOST", raising=False)
        loader = make_loader(make_secret_source(), settings=None)

        with pytest.raises(ConfigurationError, match="DB_HOST"):
            await loader.ensure_ready()
        assert not loader.ready

        # Settings are re-read on every attempt
        monkeypatch.setenv("DB_HOST", "10.0.0.5")
        runtime = await loader.ensure_ready()
        assert runtime.config.db_host == "10.0.0.5"
        await loader.aclose()

    @pytest.mark.asyncio
    async def test_engine_failure_wrapped(self, make_loader, secret_source):
        def broken_engine_factory(config, settings):
            raise RuntimeError("could not connect")

        loader = make_loader(secret_source, engine_factory=broken_engine_factory)

        with pytest.raises(ConfigurationError, match="setup failed"):
            await loader.ensure_ready()
        assert not loader.ready

    @pytest.mark.asyncio
    async def test_concurrent_callers_all_see_failure(self, make_loader, make_secret_source):
        source = make_secret_source(delay=0.01)
        source.fail = True
        loader = make_loader(source)

        results = await asyncio.gather(
            *(loader.ensure_ready() for _ in range(3)), return_exceptions=True
        )

        assert all(isinstance(r, ConfigurationError) for r in results)
        assert source.calls == 4
        assert not loader.ready

    @pytest.mark.asyncio
    async def test_failure_after_all_callers_cancelled(self, make_loader, make_secret_source):
        source = make_secret_source(delay=0.05)
        source.fail = True
        loader = make_loader(source)

        waiter = asyncio.create_task(loader.ensure_ready())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        # The shared load keeps running and fails with nobody awaiting it
        await asyncio.sleep(0.1)
        assert not loader.ready

        source.fail = False
        runtime = await loader.ensure_ready()

        assert runtime.config.export_bucket == "notex-backups"
        assert source.calls == 8
        await loader.aclose()
