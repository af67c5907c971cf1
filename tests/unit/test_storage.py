"""Unit tests for cooking statistics storage.

Tests the repository against mongomock, connection management, retry
logic, and the background completion recorder.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock, patch

import mongomock
import pytest
from pymongo.errors import ConnectionFailure

from cuisto.config import StorageConfig
from cuisto.errors import StorageError
from cuisto.storage import (
    ActivityType,
    CompletionRecorder,
    CookedActivityDTO,
    CookingStatsDTO,
    CookingStatsRepository,
    MongoStorageClient,
    create_storage_client,
    retry_on_connection_failure,
)


@pytest.fixture
def repository() -> CookingStatsRepository:
    """Create a repository over in-memory collections."""
    db = mongomock.MongoClient()["cuisto_test"]
    return CookingStatsRepository(db["profiles"], db["activities"])


class TestModels:
    """Tests for storage DTOs."""

    def test_activity_to_dict(self) -> None:
        """Test CookedActivityDTO converts to dict correctly."""
        created = datetime(2026, 3, 1, 19, 30, tzinfo=UTC)
        dto = CookedActivityDTO(
            user_id="user-1",
            recipe_id="pates-1",
            recipe_title="Pâtes carbonara",
            minutes=25,
            created_at=created,
        )

        result = dto.to_dict()

        assert result == {
            "user_id": "user-1",
            "type": "cooked",
            "recipe_id": "pates-1",
            "recipe_title": "Pâtes carbonara",
            "minutes": 25,
            "created_at": created,
        }

    def test_activity_from_dict(self) -> None:
        """Test CookedActivityDTO creates from dict correctly."""
        dto = CookedActivityDTO.from_dict(
            {
                "_id": "abc123",
                "user_id": "user-1",
                "type": "cooked",
                "recipe_id": "pates-1",
                "recipe_title": "Pâtes carbonara",
                "minutes": 25,
            }
        )
        assert dto.id == "abc123"
        assert dto.type == ActivityType.COOKED
        assert dto.minutes == 25

    def test_stats_from_dict(self) -> None:
        """Test CookingStatsDTO reads the nested stats document."""
        dto = CookingStatsDTO.from_dict(
            {"user_id": "user-1", "stats": {"recipes_cooked": 3, "total_cooking_time": 90}}
        )
        assert dto.recipes_cooked == 3
        assert dto.total_cooking_time == 90

    def test_stats_from_dict_without_stats(self) -> None:
        """Test missing counters default to zero."""
        dto = CookingStatsDTO.from_dict({"user_id": "user-1"})
        assert dto.recipes_cooked == 0
        assert dto.total_cooking_time == 0


class TestCookingStatsRepository:
    """Tests for CookingStatsRepository."""

    def test_unknown_user_has_zero_stats(self, repository: CookingStatsRepository) -> None:
        """Test a user without history gets zeroed stats."""
        stats = repository.get_stats("nobody")
        assert stats.user_id == "nobody"
        assert stats.recipes_cooked == 0

    def test_record_creates_profile(self, repository: CookingStatsRepository) -> None:
        """Test the first record upserts the profile."""
        activity_id = repository.record_recipe_cooked("user-1", "pates-1", "Pâtes", 25)

        stats = repository.get_stats("user-1")
        assert activity_id
        assert stats.recipes_cooked == 1
        assert stats.total_cooking_time == 25

    def test_record_accumulates(self, repository: CookingStatsRepository) -> None:
        """Test counters increment across sessions."""
        repository.record_recipe_cooked("user-1", "pates-1", "Pâtes", 25)
        repository.record_recipe_cooked("user-1", "boeuf-1", "Bœuf", 200)
        repository.record_recipe_cooked("user-2", "pates-1", "Pâtes", 30)

        stats = repository.get_stats("user-1")
        assert stats.recipes_cooked == 2
        assert stats.total_cooking_time == 225

    def test_dropped_insert_credits_once(self, repository: CookingStatsRepository) -> None:
        """Test a retried activity insert does not double the counters."""
        real_insert = repository._activities.insert_one
        calls = 0

        def flaky_insert(doc: dict) -> object:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ConnectionFailure("connection reset")
            return real_insert(doc)

        with (
            patch.object(repository._activities, "insert_one", side_effect=flaky_insert),
            patch("cuisto.storage.client.time.sleep"),
        ):
            repository.record_recipe_cooked("user-1", "pates-1", "Pâtes", 10)

        stats = repository.get_stats("user-1")
        assert calls == 2
        assert stats.recipes_cooked == 1
        assert stats.total_cooking_time == 10
        assert len(repository.get_recent_activity("user-1")) == 1

    def test_failed_insert_credits_nothing(self, repository: CookingStatsRepository) -> None:
        """Test counters stay untouched when the activity cannot be written."""
        with (
            patch.object(
                repository._activities,
                "insert_one",
                side_effect=ConnectionFailure("down"),
            ),
            patch("cuisto.storage.client.time.sleep"),
            pytest.raises(ConnectionFailure),
        ):
            repository.record_recipe_cooked("user-1", "pates-1", "Pâtes", 10)

        assert repository.get_stats("user-1").recipes_cooked == 0

    def test_recent_activity(self, repository: CookingStatsRepository) -> None:
        """Test the activity feed is per user and limited."""
        repository.record_recipe_cooked("user-1", "pates-1", "Pâtes", 25)
        repository.record_recipe_cooked("user-1", "boeuf-1", "Bœuf", 200)
        repository.record_recipe_cooked("user-2", "riz-1", "Riz", 15)

        activity = repository.get_recent_activity("user-1", limit=5)

        assert {a.recipe_title for a in activity} == {"Pâtes", "Bœuf"}
        assert all(a.type == ActivityType.COOKED for a in activity)
        assert len(repository.get_recent_activity("user-1", limit=1)) == 1


class TestRetryDecorator:
    """Tests for the retry_on_connection_failure decorator."""

    def test_retry_success_on_first_try(self) -> None:
        """Test function succeeds without retries."""
        call_count = 0

        @retry_on_connection_failure(max_retries=3)
        def successful_func() -> str:
            nonlocal call_count
            call_count += 1
            return "success"

        assert successful_func() == "success"
        assert call_count == 1

    def test_retry_success_after_failures(self) -> None:
        """Test function succeeds after transient failures."""
        call_count = 0

        @retry_on_connection_failure(max_retries=5, base_delay=0.01)
        def flaky_func() -> str:
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionFailure("Connection lost")
            return "success"

        assert flaky_func() == "success"
        assert call_count == 3

    def test_retry_exhausted(self) -> None:
        """Test function raises after max retries."""

        @retry_on_connection_failure(max_retries=2, base_delay=0.01)
        def always_fails() -> str:
            raise ConnectionFailure("Persistent failure")

        with pytest.raises(ConnectionFailure):
            always_fails()

    def test_other_errors_are_not_retried(self) -> None:
        """Test non-connection errors propagate immediately."""
        call_count = 0

        @retry_on_connection_failure(max_retries=3, base_delay=0.01)
        def broken() -> str:
            nonlocal call_count
            call_count += 1
            raise ValueError("bad document")

        with pytest.raises(ValueError):
            broken()
        assert call_count == 1


class TestMongoStorageClient:
    """Tests for MongoStorageClient."""

    @patch("cuisto.storage.client.MongoClient")
    def test_connect_success(self, mock_mongo_client: MagicMock) -> None:
        """Test successful connection to MongoDB."""
        mock_client_instance = MagicMock()
        mock_mongo_client.return_value = mock_client_instance

        client = MongoStorageClient(uri="mongodb://localhost:27017")
        client.connect()

        assert client.is_connected()
        assert isinstance(client.stats, CookingStatsRepository)
        mock_client_instance.admin.command.assert_called_with("ping")

    @patch("cuisto.storage.client.MongoClient")
    def test_connect_failure(self, mock_mongo_client: MagicMock) -> None:
        """Test connection failure handling."""
        mock_mongo_client.side_effect = ConnectionFailure("Connection refused")

        client = MongoStorageClient(uri="mongodb://localhost:27017")

        with pytest.raises(ConnectionFailure):
            client.connect()

        assert not client.is_connected()

    @patch("cuisto.storage.client.MongoClient")
    def test_context_manager(self, mock_mongo_client: MagicMock) -> None:
        """Test client works as context manager."""
        mock_client_instance = MagicMock()
        mock_mongo_client.return_value = mock_client_instance

        with MongoStorageClient() as client:
            assert client.is_connected()

        mock_client_instance.close.assert_called_once()
        assert not client.is_connected()

    def test_stats_property_raises_when_not_connected(self) -> None:
        """Test accessing stats raises when not connected."""
        client = MongoStorageClient()

        with pytest.raises(StorageError, match="Not connected"):
            _ = client.stats


class TestCompletionRecorder:
    """Tests for the background completion recorder."""

    def test_submit_writes_in_background(self) -> None:
        """Test a submitted completion reaches the repository."""
        repository = MagicMock()
        recorder = CompletionRecorder(repository)

        thread = recorder.submit("user-1", "pates-1", "Pâtes", 25)
        recorder.flush()

        assert thread.daemon is True
        repository.record_recipe_cooked.assert_called_once_with("user-1", "pates-1", "Pâtes", 25)

    def test_failed_write_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test a failing repository does not raise."""
        repository = MagicMock()
        repository.record_recipe_cooked.side_effect = ConnectionFailure("down")
        recorder = CompletionRecorder(repository)

        recorder.submit("user-1", "pates-1", "Pâtes", 25)
        recorder.flush()

        assert "Failed to record completion of 'Pâtes'" in caplog.text

    def test_writes_to_mongomock(self, repository: CookingStatsRepository) -> None:
        """Test the recorder against a real repository."""
        recorder = CompletionRecorder(repository)
        recorder.submit("user-1", "pates-1", "Pâtes", 25)
        recorder.flush()
        assert repository.get_stats("user-1").recipes_cooked == 1

    def test_close_flushes_then_disconnects(self) -> None:
        """Test close waits for writes and disconnects the owned client."""
        client = MagicMock()
        recorder = CompletionRecorder.from_client(client)

        recorder.submit("user-1", "pates-1", "Pâtes", 25)
        recorder.close()
        recorder.close()

        client.stats.record_recipe_cooked.assert_called_once_with("user-1", "pates-1", "Pâtes", 25)
        client.disconnect.assert_called_once()

    def test_close_without_client(self) -> None:
        """Test close is safe when the recorder owns no connection."""
        repository = MagicMock()
        recorder = CompletionRecorder(repository)
        recorder.close()
        repository.disconnect.assert_not_called()


class TestCreateStorageClient:
    """Tests for create_storage_client."""

    def test_disabled(self) -> None:
        """Test disabled storage yields no client."""
        assert create_storage_client(StorageConfig(enabled=False)) is None

    @patch("cuisto.storage.recorder.MongoStorageClient")
    def test_unreachable(self, mock_client: MagicMock) -> None:
        """Test an unreachable server yields no client."""
        mock_client.return_value.connect.side_effect = ConnectionFailure("refused")
        assert create_storage_client(StorageConfig(enabled=True)) is None

    @patch("cuisto.storage.recorder.MongoStorageClient")
    def test_connected(self, mock_client: MagicMock) -> None:
        """Test a reachable server yields the connected client."""
        config = StorageConfig(enabled=True, uri="mongodb://db:27017", database="cuisto_x")

        result = create_storage_client(config)

        mock_client.assert_called_once_with(
            uri="mongodb://db:27017",
            database_name="cuisto_x",
            server_selection_timeout_ms=2000,
        )
        assert result is mock_client.return_value
