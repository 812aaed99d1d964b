"""Unit tests for the Celery import tasks."""

from types import SimpleNamespace
from typing import Any

import pytest

from catalog_service.config import Settings
from catalog_service.exceptions import SyncLockedError
from catalog_service.infrastructure.database.models import BatchJobStatus
from catalog_service.infrastructure.redis import SyncLock
from catalog_service.services.batch_job import BatchJobService
from catalog_service.services.import_strategy import MagentoImportStrategy
from fakes import FakeRedis, FakeSession, FakeUnitOfWork, StubSyncService
from shared.constants import IMPORT_BATCH_TYPE
from sync_worker.main import app as celery_app
from sync_worker.tasks import import_catalog

SUMMARY = {
    "store_id": "store_eu",
    "skipped": False,
    "categories": {"seen": 1, "created": 1, "updated": 0, "unchanged": 0, "linked": 0, "failed": 0},
    "products": {"seen": 0, "created": 0, "updated": 0, "unchanged": 0, "skipped": 0, "failed": 0},
}


class NullMagentoClient:
    async def __aenter__(self) -> "NullMagentoClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None


async def noop() -> None:
    return None


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sync_service() -> StubSyncService:
    return StubSyncService(SUMMARY)


@pytest.fixture
def wired_job_runner(
    monkeypatch: pytest.MonkeyPatch,
    session: FakeSession,
    sync_service: StubSyncService,
    fake_redis: FakeRedis,
    test_settings: Settings,
) -> None:
    """Point ``run_import_job`` at in-memory Redis, batch jobs and sync."""

    async def get_redis_client() -> FakeRedis:
        return fake_redis

    def make_strategy(_sync_service: Any) -> MagentoImportStrategy:
        return MagentoImportStrategy(
            sync_service,
            batch_jobs=BatchJobService(),
            unit_of_work=FakeUnitOfWork(session=session),
            settings=test_settings,
        )

    monkeypatch.setattr(import_catalog, "get_redis_client", get_redis_client)
    monkeypatch.setattr(import_catalog, "close_redis", noop)
    monkeypatch.setattr(import_catalog, "dispose_engine", noop)
    monkeypatch.setattr(import_catalog, "MagentoClient", NullMagentoClient)
    monkeypatch.setattr(
        import_catalog,
        "CatalogSyncService",
        SimpleNamespace(create=lambda client, cache=None: sync_service),
    )
    monkeypatch.setattr(import_catalog, "MagentoImportStrategy", make_strategy)


async def create_job(session: FakeSession, store_id: str) -> str:
    batch_job = await BatchJobService(session).create(
        IMPORT_BATCH_TYPE, context={"store_id": store_id}
    )
    return batch_job.id


def test_beat_schedules_magento_import() -> None:
    entry = celery_app.conf.beat_schedule["import-magento-catalog"]

    assert entry["task"] == "sync_worker.tasks.import_catalog.schedule_magento_import"


def test_import_task_runs_job(monkeypatch: pytest.MonkeyPatch) -> None:
    async def fake_run_import_job(batch_job_id: str) -> dict[str, Any]:
        return {"batch_job_id": batch_job_id, "progress": 3}

    monkeypatch.setattr(import_catalog, "run_import_job", fake_run_import_job)

    assert import_catalog.import_magento_catalog.run("batch_1") == {
        "batch_job_id": "batch_1",
        "progress": 3,
    }


def test_import_task_surfaces_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    async def failing_run_import_job(batch_job_id: str) -> dict[str, Any]:
        raise RuntimeError("Magento unreachable")

    monkeypatch.setattr(import_catalog, "run_import_job", failing_run_import_job)

    # Called outside a worker, retry re-raises the original error
    with pytest.raises(RuntimeError):
        import_catalog.import_magento_catalog.run("batch_1")


def test_locked_store_is_skipped_without_retry(monkeypatch: pytest.MonkeyPatch) -> None:
    async def locked_run_import_job(batch_job_id: str) -> dict[str, Any]:
        raise SyncLockedError("store_default")

    monkeypatch.setattr(import_catalog, "run_import_job", locked_run_import_job)

    result = import_catalog.import_magento_catalog.run("batch_1")

    assert result["batch_job_id"] == "batch_1"
    assert result["skipped"] is True
    assert "store_default" in result["error"]


def test_schedule_creates_job_for_default_store(monkeypatch: pytest.MonkeyPatch) -> None:
    enqueued: list[str] = []

    async def fake_create_import_job(store_id: str) -> str:
        return f"batch_for_{store_id}"

    monkeypatch.setattr(import_catalog, "create_import_job", fake_create_import_job)
    monkeypatch.setattr(import_catalog.import_magento_catalog, "delay", enqueued.append)

    result = import_catalog.schedule_magento_import.run()

    assert result == {"batch_job_id": "batch_for_store_default", "store_id": "store_default"}
    assert enqueued == ["batch_for_store_default"]


@pytest.mark.usefixtures("wired_job_runner")
class TestRunImportJob:
    """Job runner under the per-store lock."""

    @pytest.mark.asyncio
    async def test_runs_job_and_releases_lock(
        self, session: FakeSession, sync_service: StubSyncService, fake_redis: FakeRedis
    ) -> None:
        batch_job_id = await create_job(session, "store_eu")

        result = await import_catalog.run_import_job(batch_job_id)

        assert result["progress"] == 1
        assert sync_service.calls == ["store_eu"]
        assert fake_redis.data == {}
        batch_job = await BatchJobService(session).retrieve(batch_job_id)
        assert batch_job.status == BatchJobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_held_lock_fails_job_and_keeps_lock(
        self, session: FakeSession, sync_service: StubSyncService, fake_redis: FakeRedis
    ) -> None:
        running = SyncLock(fake_redis, "store_eu", ttl_seconds=60)
        await running.acquire()
        batch_job_id = await create_job(session, "store_eu")

        with pytest.raises(SyncLockedError):
            await import_catalog.run_import_job(batch_job_id)

        assert sync_service.calls == []
        assert running.key in fake_redis.data
        batch_job = await BatchJobService(session).retrieve(batch_job_id)
        assert batch_job.status == BatchJobStatus.FAILED
        assert batch_job.result["errors"] == [
            "A catalog sync is already running for store store_eu"
        ]

    @pytest.mark.asyncio
    async def test_other_store_is_not_blocked(
        self, session: FakeSession, sync_service: StubSyncService, fake_redis: FakeRedis
    ) -> None:
        await SyncLock(fake_redis, "store_us", ttl_seconds=60).acquire()
        batch_job_id = await create_job(session, "store_eu")

        await import_catalog.run_import_job(batch_job_id)

        assert sync_service.calls == ["store_eu"]
        assert list(fake_redis.data) == ["catalog-sync:lock:store_us"]
