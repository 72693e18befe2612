"""
Tests for the per-user voice order pipeline and feedback log.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from services.voice.models import CatalogEntry
from services.voice.orders.pipeline import PipelineState, VoiceOrderPipeline
from services.voice.repository import InMemoryVoiceOrderRepository
from services.voice.stt.cache import CorrectionCache
from services.voice.stt.corrections import CorrectionStore
from services.voice.stt.learning_system import FeedbackLog

from tests.conftest import FakeClock


class SlowCatalogRepository(InMemoryVoiceOrderRepository):
    """Blocks list_catalog until released."""

    def __init__(self):
        super().__init__()
        self.release = asyncio.Event()

    async def list_catalog(self, user_id):
        await self.release.wait()
        return await super().list_catalog(user_id)


class TestProcessTranscript:

    @pytest.mark.asyncio
    async def test_matched_order(self, pipeline, user_id):
        resolution = await pipeline.process_transcript(user_id, "quero 2 pacotes de manteiga de 400 kz cada")

        assert resolution.state == PipelineState.MATCHED
        assert resolution.match.product.name == "Manteiga"
        assert resolution.match.confidence == 1.0
        assert resolution.parsed.quantity == 2
        assert resolution.parsed.price == 400
        assert pipeline.get_session(user_id).state == PipelineState.MATCHED

    @pytest.mark.asyncio
    async def test_correction_feeds_parser(self, pipeline, user_id):
        resolution = await pipeline.process_transcript(user_id, "quero tibana")

        assert resolution.corrected_text == "quero tibone"
        assert resolution.match.product.name == "Bolacha Tibone"
        assert 0.3 <= resolution.match.confidence < 1.0

    @pytest.mark.asyncio
    async def test_unmatched_gets_suggestions(self, pipeline, user_id):
        resolution = await pipeline.process_transcript(user_id, "koka kola")

        assert resolution.state == PipelineState.UNMATCHED
        assert resolution.match is None
        assert resolution.alternative_terms == ["koka kola"]
        assert resolution.suggestions[0][0].name == "Coca Cola 330ml"
        assert resolution.suggestions[0][1] >= 0.95

    @pytest.mark.asyncio
    async def test_catalog_failure_degrades(self, user_id):
        repo = AsyncMock()
        repo.list_active_corrections.return_value = []
        repo.list_catalog.side_effect = RuntimeError("database down")
        store = CorrectionStore(repo, cache=CorrectionCache(clock=FakeClock()))
        pipeline = VoiceOrderPipeline(store, repo)

        resolution = await pipeline.process_transcript(user_id, "2 arroz")
        assert resolution.state == PipelineState.UNMATCHED
        assert resolution.parsed.quantity == 2
        assert not pipeline.is_processing(user_id)

    @pytest.mark.asyncio
    async def test_empty_transcript(self, pipeline, user_id):
        resolution = await pipeline.process_transcript(user_id, "")
        assert resolution.state == PipelineState.UNMATCHED
        assert resolution.parsed.quantity == 1

    @pytest.mark.asyncio
    async def test_second_utterance_while_busy(self, catalog, user_id):
        repo = SlowCatalogRepository()
        for entry in catalog:
            repo.add_product(user_id, entry)
        store = CorrectionStore(repo, cache=CorrectionCache(clock=FakeClock()))
        pipeline = VoiceOrderPipeline(store, repo)

        first = asyncio.create_task(pipeline.process_transcript(user_id, "manteiga"))
        await asyncio.sleep(0)
        assert pipeline.is_processing(user_id)

        second = await pipeline.process_transcript(user_id, "arroz")
        assert second.busy
        assert second.match is None

        repo.release.set()
        resolution = await first
        assert not resolution.busy
        assert resolution.match.product.name == "Manteiga"
        assert not pipeline.is_processing(user_id)

    @pytest.mark.asyncio
    async def test_users_do_not_block_each_other(self, user_id):
        repo = SlowCatalogRepository()
        store = CorrectionStore(repo, cache=CorrectionCache(clock=FakeClock()))
        pipeline = VoiceOrderPipeline(store, repo)

        first = asyncio.create_task(pipeline.process_transcript(user_id, "manteiga"))
        await asyncio.sleep(0)
        other = asyncio.create_task(pipeline.process_transcript("user-2", "arroz"))
        await asyncio.sleep(0)

        assert pipeline.is_processing(user_id)
        assert pipeline.is_processing("user-2")

        repo.release.set()
        assert not (await first).busy
        assert not (await other).busy

    def test_start_listening(self, pipeline, user_id):
        assert pipeline.start_listening(user_id) == PipelineState.LISTENING

    @pytest.mark.asyncio
    async def test_resolution_serializes(self, pipeline, user_id):
        data = (await pipeline.process_transcript(user_id, "3 coca cola")).to_dict()
        assert data["state"] == "matched"
        assert data["match"]["product_id"] == "5"
        assert data["parsed"]["quantity"] == 3


class TestFeedbackLoop:

    @pytest.mark.asyncio
    async def test_confirm_records_without_correction(self, pipeline, repository, user_id):
        await pipeline.process_transcript(user_id, "manteiga")

        assert await pipeline.confirm_match(user_id)
        assert pipeline.get_session(user_id).state == PipelineState.IDLE
        assert pipeline.feedback.get_statistics(user_id)["confirmed"] == 1
        assert await repository.list_active_corrections(user_id) == []

    @pytest.mark.asyncio
    async def test_confirm_without_match(self, pipeline, user_id):
        assert await pipeline.confirm_match(user_id) is False

        await pipeline.process_transcript(user_id, "biscoito doce")
        assert await pipeline.confirm_match(user_id) is False

    @pytest.mark.asyncio
    async def test_rejection_naming_product_teaches(self, pipeline, user_id):
        first = await pipeline.process_transcript(user_id, "biscoito doce")
        assert first.state == PipelineState.UNMATCHED

        assert await pipeline.reject_match(user_id, "Bolacha Tibone")
        assert pipeline.feedback.get_statistics(user_id)["rejected"] == 1

        second = await pipeline.process_transcript(user_id, "biscoito doce")
        assert second.state == PipelineState.MATCHED
        assert second.match.product.name == "Bolacha Tibone"

    @pytest.mark.asyncio
    async def test_rejection_learns_what_was_heard(self, empty_repository, user_id):
        empty_repository.add_product(user_id, CatalogEntry(id="7", name="Sabau Doce"))
        store = CorrectionStore(empty_repository, cache=CorrectionCache(clock=FakeClock()), auto_learn=False)
        pipeline = VoiceOrderPipeline(store, empty_repository)

        first = await pipeline.process_transcript(user_id, "quero sabau")
        assert first.corrected_text == "quero sabão"

        assert await pipeline.reject_match(user_id, "Sabau Doce")
        records = await empty_repository.list_active_corrections(user_id)
        assert [(r.original_text, r.corrected_text) for r in records] == [("sabau", "Sabau Doce")]

        second = await pipeline.process_transcript(user_id, "quero sabau")
        assert second.state == PipelineState.MATCHED
        assert second.match.product.name == "Sabau Doce"

    @pytest.mark.asyncio
    async def test_plain_rejection_stores_nothing(self, pipeline, repository, user_id):
        await pipeline.process_transcript(user_id, "manteiga")

        assert await pipeline.reject_match(user_id)
        assert await repository.list_active_corrections(user_id) == []
        assert pipeline.get_session(user_id).state == PipelineState.IDLE

    @pytest.mark.asyncio
    async def test_reject_without_resolution(self, pipeline, user_id):
        assert await pipeline.reject_match(user_id, "Manteiga") is False


class TestFeedbackLog:

    def test_bounded_per_user(self):
        log = FeedbackLog(max_samples=3)
        for i in range(5):
            log.record_confirmation("u1", f"item {i}", str(i), f"Item {i}", 0.9)
        log.record_rejection("u2", "xyz")

        samples = log.get_samples("u1")
        assert [s.transcript for s in samples] == ["item 2", "item 3", "item 4"]
        assert len(log.get_samples("u2")) == 1

    def test_statistics(self):
        log = FeedbackLog(max_samples=10)
        log.record_confirmation("u1", "arroz", "1", "Arroz", 0.99)
        log.record_rejection("u1", "tibana", corrected_to="Bolacha Tibone")

        stats = log.get_statistics("u1")
        assert stats == {"total": 2, "confirmed": 1, "rejected": 1, "acceptance_rate": 0.5}
        assert log.get_statistics("nobody")["acceptance_rate"] == 0.0
