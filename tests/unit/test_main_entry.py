from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

import pytest
from PIL import Image

from moodmirror.app.ai import GeminiClassifier, OfflineClassifier
from moodmirror.app.checkin import CheckInStep
from moodmirror.app.core import config
from moodmirror.app.core.config import Settings
from moodmirror.app.main import build_classifier, lifespan
from moodmirror.app.schemas.emotion import EmotionKind
from tests.conftest import make_analysis


@pytest.fixture(autouse=True)
def isolated_cwd(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("LOG_FILE", str(tmp_path / "logs" / "app.log"))
    config.get_settings.cache_clear()
    yield
    config.get_settings.cache_clear()


def _settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'mood.db'}",
        "classifier_mode": "offline",
        "version": "test",
    }
    values.update(overrides)
    return Settings(**values)


def test_build_classifier_modes(tmp_path: Path) -> None:
    assert isinstance(build_classifier(_settings(tmp_path)), OfflineClassifier)
    assert isinstance(
        build_classifier(_settings(tmp_path, classifier_mode="gemini", gemini_api_key=None)),
        OfflineClassifier,
    )
    assert isinstance(
        build_classifier(_settings(tmp_path, classifier_mode="gemini", gemini_api_key="key")),
        GeminiClassifier,
    )


@pytest.mark.anyio
async def test_lifespan_wires_a_working_check_in(tmp_path: Path) -> None:
    async with lifespan(_settings(tmp_path)) as services:
        flow = services.new_check_in()
        flow.submit_photo(Image.new("RGB", (320, 240), color=(10, 200, 90)))
        flow.skip_voice()
        flow.set_notes("first entry")
        analysis = await flow.submit()

        assert flow.step is CheckInStep.DONE
        assert analysis.primary_emotion is EmotionKind.NEUTRAL

        records = await services.timeline.load()
        assert [record.notes for record in records] == ["first entry"]

        report = await services.insights.generate()
        assert report.records_analyzed == 1
        assert report.most_common_emotion is EmotionKind.NEUTRAL
        assert report.insights[0] == "You checked in 1 times in this period."


@pytest.mark.anyio
async def test_lifespan_groups_days_in_configured_zone(tmp_path: Path) -> None:
    settings = _settings(tmp_path, timezone="America/Los_Angeles")
    async with lifespan(settings) as services:
        for hour in (3, 15):
            await services.storage.save(
                make_analysis(EmotionKind.HAPPY, created_at=datetime(2024, 7, 2, hour, 0))
            )

        await services.timeline.load()

        assert services.timeline.sorted_days() == [date(2024, 7, 2), date(2024, 7, 1)]
