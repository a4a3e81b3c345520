"""Tests for the estimation service and credential providers."""

import asyncio

import pytest

from calorie_tracker.domain.entries import MealType, NutritionTotals
from calorie_tracker.domain.profile import (
    ActivityLevel,
    AppSettings,
    DailyTarget,
    Goal,
    UserProfile,
    Units,
)
from calorie_tracker.services.estimation import (
    ChainedCredentialProvider,
    EstimationError,
    EstimationService,
    MissingCredentialsError,
    StaticCredentialProvider,
    StoredCredentialProvider,
    normalize_targets,
)
from calorie_tracker.services.ledger import LedgerStore
from tests.conftest import FakeEstimationClient

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def test_estimate_from_text(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.payloads.append(
        {
            "name": "Turkey sandwich",
            "calories": 350,
            "protein": 24,
            "carbs": 35,
            "fat": 12,
            "sugar": 5,
            "portion": "1 sandwich",
            "confidence": 0.8,
        }
    )

    estimate = asyncio.run(estimation_service.estimate_from_text(" turkey sandwich "))

    assert estimate.name == "Turkey sandwich"
    assert estimate.confidence == 0.8
    call = estimation_client.calls[0]
    assert call["model"] == "text-model"
    assert call["schema_name"] == "food_estimate"
    assert '"turkey sandwich"' in str(call["prompt"])
    assert call["image_data_url"] is None


def test_estimate_defaults_missing_numbers(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.payloads.append({"name": "Mystery", "calories": 120})

    estimate = asyncio.run(estimation_service.estimate_from_text("mystery stew"))

    assert estimate.protein == 0
    assert estimate.confidence is None


def test_estimate_from_text_rejects_blank(
    estimation_service: EstimationService,
) -> None:
    with pytest.raises(ValueError):
        asyncio.run(estimation_service.estimate_from_text("   "))


def test_estimate_from_image_sends_data_url(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.payloads.append({"name": "Salad", "calories": 220})

    estimate = asyncio.run(
        estimation_service.estimate_from_image(PNG_BYTES, context="Dinner plate")
    )

    assert estimate.name == "Salad"
    call = estimation_client.calls[0]
    assert call["model"] == "vision-model"
    assert str(call["image_data_url"]).startswith("data:image/png;base64,")
    assert "Dinner plate" in str(call["prompt"])


def test_estimate_from_empty_image_fails(estimation_service: EstimationService) -> None:
    with pytest.raises(ValueError):
        asyncio.run(estimation_service.estimate_from_image(b""))


def test_invalid_payload_raises_estimation_error(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.payloads.append({"name": "Bad", "calories": -5})

    with pytest.raises(EstimationError):
        asyncio.run(estimation_service.estimate_from_text("bad food"))


def test_client_failure_is_wrapped(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.error = RuntimeError("connection reset")

    with pytest.raises(EstimationError, match="connection reset"):
        asyncio.run(estimation_service.estimate_from_text("rice"))


def test_missing_credentials_pass_through(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.error = MissingCredentialsError("API key not set")

    with pytest.raises(MissingCredentialsError):
        asyncio.run(estimation_service.estimate_from_text("rice"))


def test_estimate_targets_are_normalised(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.payloads.append(
        {"calories": 2137, "protein": 152.5, "carbs": 247.4, "fat": 67.4, "sugar": 50}
    )
    profile = UserProfile(
        age=35,
        activity_level=ActivityLevel.ACTIVE,
        goal=Goal.GAIN_MUSCLE,
        current_weight=180,
        height=70,
        units=Units.IMPERIAL,
    )

    targets = asyncio.run(estimation_service.estimate_targets(profile))

    assert targets == DailyTarget(
        calories=2150, protein=155, carbs=245, fat=65, sugar=30
    )
    prompt = str(estimation_client.calls[0]["prompt"])
    assert "180lbs" in prompt
    assert "gain_muscle" in prompt


def test_normalize_targets_clamps_low_sugar() -> None:
    targets = normalize_targets(DailyTarget(calories=1824, protein=92, sugar=10))

    assert targets.calories == 1800
    assert targets.protein == 90
    assert targets.sugar == 25


def test_suggest_meals(
    estimation_service: EstimationService, estimation_client: FakeEstimationClient
) -> None:
    estimation_client.payloads.append({"suggestions": ["Omelette", "Oats", "Toast"]})

    ideas = asyncio.run(
        estimation_service.suggest_meals(
            NutritionTotals(calories=600, protein=40),
            MealType.BREAKFAST,
            ["vegetarian"],
        )
    )

    assert ideas == ["Omelette", "Oats", "Toast"]
    prompt = str(estimation_client.calls[0]["prompt"])
    assert "breakfast" in prompt
    assert "vegetarian" in prompt


def test_credential_chain_prefers_first_key(store: LedgerStore) -> None:
    store.save_settings(AppSettings(api_key="stored-key"))

    configured = ChainedCredentialProvider(
        [StaticCredentialProvider("env-key"), StoredCredentialProvider(store)]
    )
    fallback = ChainedCredentialProvider(
        [StaticCredentialProvider(None), StoredCredentialProvider(store)]
    )

    assert configured.get_api_key() == "env-key"
    assert fallback.get_api_key() == "stored-key"
    assert ChainedCredentialProvider([]).get_api_key() is None
