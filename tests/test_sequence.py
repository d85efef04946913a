"""
Tests for the atomic sequence allocator and identifier minting.
"""

import asyncio
import re
import uuid
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from shiplink.core.errors import ValidationError
from shiplink.services.identifiers import IdentifierMinter, role_code

ORDER_ID_RE = re.compile(r"^ORD-\d{8}-\d{8}$")
ORDER_NUMBER_RE = re.compile(r"^SHL-[A-Z]{1,2}-[A-Z0-9]{4}-\d{4}$")


class TestSequenceAllocator:

    async def test_missing_key_starts_at_one(self, allocator):
        assert await allocator.current("fresh") == 0
        assert await allocator.next("fresh") == 1
        assert await allocator.current("fresh") == 1

    async def test_strictly_increasing(self, allocator):
        values = [await allocator.next("k") for _ in range(5)]
        assert values == [1, 2, 3, 4, 5]

    async def test_keys_are_independent(self, allocator):
        assert await allocator.next("a") == 1
        assert await allocator.next("a") == 2
        assert await allocator.next("b") == 1

    async def test_concurrent_callers_get_distinct_values(self, allocator):
        n = 12
        values = await asyncio.gather(*(allocator.next("contended") for _ in range(n)))
        assert sorted(values) == list(range(1, n + 1))
        assert await allocator.current("contended") == n


class FlakyAllocator:
    """Fails the first ``failures`` calls with a storage error."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = []
        self.seq = 0

    async def next(self, key: str) -> int:
        self.calls.append(key)
        if self.failures > 0:
            self.failures -= 1
            raise OperationalError("UPDATE sequence_counters", {}, Exception("database is locked"))
        self.seq += 1
        return self.seq


class TestIdentifierMinter:

    @pytest.mark.parametrize("role,code", [
        ("seller", "S"),
        ("logistics-company", "L"),
        ("driver", "D"),
        ("sourcing-agent", "SA"),
        ("import-coach", "IC"),
        ("user", "U"),
        ("admin", "U"),
        (None, "U"),
    ])
    def test_role_codes(self, role, code):
        assert role_code(role) == code

    async def test_global_order_id_format(self, minter, allocator):
        order_id = await minter.global_order_id(on=date(2024, 1, 15))
        assert order_id == "ORD-20240115-00000001"
        assert ORDER_ID_RE.match(order_id)
        assert await allocator.current("order_global_20240115") == 1

    async def test_order_number_format(self, minter, allocator):
        owner = uuid.UUID("0f8fad5b-d9cb-469f-a165-70867728abcd")
        number = await minter.order_number(owner, "seller", on=date(2024, 1, 15))
        assert number == "SHL-S-ABCD-0001"
        assert ORDER_NUMBER_RE.match(number)
        assert await allocator.current(f"order_user_{owner}_20240115") == 1

    async def test_order_numbers_count_per_owner(self, minter):
        owner_a, owner_b = uuid.uuid4(), uuid.uuid4()
        on = date(2024, 3, 1)
        assert (await minter.order_number(owner_a, "driver", on=on)).endswith("-0001")
        assert (await minter.order_number(owner_a, "driver", on=on)).endswith("-0002")
        assert (await minter.order_number(owner_b, "driver", on=on)).endswith("-0001")

    async def test_counters_reset_per_day(self, minter):
        assert await minter.global_order_id(on=date(2024, 1, 1)) == "ORD-20240101-00000001"
        assert await minter.global_order_id(on=date(2024, 1, 1)) == "ORD-20240101-00000002"
        assert await minter.global_order_id(on=date(2024, 1, 2)) == "ORD-20240102-00000001"

    async def test_quote_numbers_use_their_own_counter(self, minter, allocator):
        owner = uuid.uuid4()
        on = date(2024, 5, 5)
        await minter.order_number(owner, "logistics-company", on=on)
        quote_number = await minter.quote_number(owner, "logistics-company", on=on)
        assert quote_number.startswith("SHL-L-")
        assert quote_number.endswith("-0001")
        assert ORDER_NUMBER_RE.match(quote_number)

    async def test_missing_owner_rejected_before_allocation(self):
        allocator = FlakyAllocator(failures=0)
        minter = IdentifierMinter(allocator, retry_attempts=1, retry_backoff_seconds=0)
        with pytest.raises(ValidationError) as exc:
            await minter.order_number(None, "seller")
        assert exc.value.code == "missing_owner"
        assert allocator.calls == []

    async def test_concurrent_global_ids_unique(self, minter):
        ids = await asyncio.gather(*(minter.global_order_id() for _ in range(10)))
        assert len(set(ids)) == 10
        assert all(ORDER_ID_RE.match(i) for i in ids)

    async def test_storage_errors_are_retried(self):
        allocator = FlakyAllocator(failures=2)
        minter = IdentifierMinter(allocator, retry_attempts=3, retry_backoff_seconds=0)
        order_id = await minter.global_order_id(on=date(2024, 1, 15))
        assert order_id == "ORD-20240115-00000001"
        assert len(allocator.calls) == 3

    async def test_final_storage_error_propagates(self):
        allocator = FlakyAllocator(failures=5)
        minter = IdentifierMinter(allocator, retry_attempts=2, retry_backoff_seconds=0)
        with pytest.raises(OperationalError):
            await minter.global_order_id()
        assert len(allocator.calls) == 2
