"""Tests for entry ID generation and the storage retry policy."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from daybook.core.ids import generate_entry_id, is_valid_entry_id
from daybook.core.retry import RetryPolicy, create_retry_policy, with_retry


class TestEntryIds:
    def test_format(self):
        entry_id = generate_entry_id(datetime(2024, 1, 1, 12, 30, 5, tzinfo=timezone.utc))

        assert entry_id.startswith("entry-20240101-123005-")
        assert is_valid_entry_id(entry_id)

    def test_unique_within_one_second(self):
        now = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        ids = {generate_entry_id(now) for _ in range(500)}

        assert len(ids) == 500

    def test_invalid_ids(self):
        assert not is_valid_entry_id("task-20240101-1230-abc")
        assert not is_valid_entry_id("entry-2024-01-01")


class TestRetry:
    def test_retries_os_errors_then_succeeds(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OSError("disk busy")
            return "ok"

        policy = RetryPolicy(max_retries=3, base_delay=0, jitter=0)

        assert with_retry(flaky, policy) == "ok"
        assert len(calls) == 3

    def test_gives_up_after_max_retries(self):
        calls = []

        def broken():
            calls.append(1)
            raise OSError("disk gone")

        with pytest.raises(OSError, match="disk gone"):
            with_retry(broken, RetryPolicy(max_retries=2, base_delay=0, jitter=0))

        assert len(calls) == 3

    def test_non_io_errors_not_retried(self):
        calls = []

        def bad_input():
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            with_retry(bad_input, RetryPolicy(base_delay=0))

        assert len(calls) == 1

    def test_delay_is_capped(self):
        policy = RetryPolicy(base_delay=0.5, max_delay=1.0, jitter=0)

        assert policy.get_delay(0) == 0.5
        assert policy.get_delay(10) == 1.0

    def test_factory_rejects_negative(self):
        with pytest.raises(ValueError):
            create_retry_policy(max_retries=-1)
