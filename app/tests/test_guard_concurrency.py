import asyncio
import pytest
from sqlalchemy import func, select
from app.models.processed_webhook import ProcessedWebhook


@pytest.mark.asyncio
async def test_concurrent_duplicate_deliveries(guard, db_session_factory):
    """
    Test: 50 retried deliveries of the same event race to record it.
    Expected: exactly one insert wins, nobody sees an error.
    """
    num_of_concurrent_requests = 50

    async def make_request(request_num):
        try:
            recorded = await guard.mark_processed("evt-dup", "signed")
            return {"success": True, "recorded": recorded, "request": request_num}
        except Exception as e:
            return {"success": False, "error": str(e), "request": request_num}

    coros = [make_request(i) for i in range(num_of_concurrent_requests)]
    results = await asyncio.gather(*coros)

    failed = [r for r in results if not r["success"]]
    winners = [r for r in results if r["success"] and r["recorded"]]

    assert len(failed) == 0, f"Expected no errors, got {len(failed)}. Results: {failed}"
    assert len(winners) == 1, f"Expected 1 winning insert, got {len(winners)}. Results: {winners}"

    async with db_session_factory() as session:
        count = (await session.execute(
            select(func.count()).select_from(ProcessedWebhook)
            .where(ProcessedWebhook.delivery_id == "evt-dup"))).scalar_one()
    assert count == 1
    assert await guard.is_already_processed("evt-dup") is True


@pytest.mark.asyncio
async def test_concurrent_different_deliveries(guard, db_session_factory):
    """
    Test: distinct deliveries arriving together.
    Expected: every one of them is recorded.
    """
    delivery_ids = [f"evt-{i}" for i in range(10)]

    results = await asyncio.gather(
        *[guard.mark_processed(delivery_id, "signed") for delivery_id in delivery_ids])

    assert all(results), f"Expected every delivery recorded. Results: {results}"
    async with db_session_factory() as session:
        count = (await session.execute(
            select(func.count()).select_from(ProcessedWebhook))).scalar_one()
    assert count == len(delivery_ids)
