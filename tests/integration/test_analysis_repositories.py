import pytest

from chartsense.domain.models import AnalysisStatus, Feedback, HistoryFilters
from chartsense.infrastructure.db.repositories.analysis_repository import (
    MAX_ERROR_LENGTH,
    AnalysisRepository,
)
from chartsense.infrastructure.db.repositories.feedback_repository import FeedbackRepository


async def _create(repo, asset="EUR/USD", timeframe="1m", user_id=None):
    return await repo.create(
        asset=asset,
        timeframe=timeframe,
        strategy="simple",
        image_path=f"{user_id or 'anonymous'}/chart.png",
        user_id=user_id,
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_analysis_lifecycle_to_done(db_session):
    repo = AnalysisRepository(db_session)
    record = await _create(repo)

    assert record.status == AnalysisStatus.PROCESSING
    assert len(record.id) == 36

    done = await repo.mark_done(record.id, {"action": "buy"})
    assert done.status == AnalysisStatus.DONE
    assert done.error is None

    fetched = await repo.get(record.id)
    assert fetched.result_json == {"action": "buy"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_error_message_is_truncated(db_session):
    repo = AnalysisRepository(db_session)
    record = await _create(repo)

    failed = await repo.mark_error(record.id, "x" * 1000)
    assert failed.status == AnalysisStatus.ERROR
    assert len(failed.error) == MAX_ERROR_LENGTH


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_analysis(db_session):
    repo = AnalysisRepository(db_session)
    assert await repo.get("00000000-0000-0000-0000-000000000000") is None
    with pytest.raises(ValueError):
        await repo.mark_done("00000000-0000-0000-0000-000000000000", {})


@pytest.mark.asyncio
@pytest.mark.integration
async def test_history_is_newest_first_and_filtered(db_session):
    repo = AnalysisRepository(db_session)
    user = "11111111-1111-1111-1111-111111111111"
    first = await _create(repo, user_id=user)
    await _create(repo, asset="BTC/USD", timeframe="5m")
    third = await _create(repo, user_id=user, timeframe="5m")

    history = await repo.list_history(HistoryFilters())
    assert [r.id for r in history][0] == third.id
    assert len(history) == 3

    mine = await repo.list_history(HistoryFilters(user_id=user))
    assert [r.id for r in mine] == [third.id, first.id]

    five_minute_eur = await repo.list_history(HistoryFilters(asset="EUR/USD", timeframe="5m"))
    assert [r.id for r in five_minute_eur] == [third.id]

    assert len(await repo.list_history(HistoryFilters(limit=2))) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_feedback_roundtrip(db_session):
    record = await _create(AnalysisRepository(db_session))
    repo = FeedbackRepository(db_session)

    saved = await repo.create(Feedback(analysis_id=record.id, rating=4, comment="Nice"))
    assert saved.id is not None
    assert saved.created_at is not None

    await repo.create(Feedback(analysis_id=record.id, rating=2))
    ratings = [f.rating for f in await repo.list_for_analysis(record.id)]
    assert ratings == [4, 2]


@pytest.mark.integration
def test_feedback_rating_bounds():
    with pytest.raises(ValueError):
        Feedback(analysis_id="a", rating=0)
    with pytest.raises(ValueError):
        Feedback(analysis_id="a", rating=6)
