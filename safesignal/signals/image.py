"""Image classification boundary and label-to-category mapping.

Pixel-level classification is delegated to an external service. The
orchestrator only sees ``ImageLabel`` values and maps them onto safety
categories through ``LABEL_CATEGORIES``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

import httpx
from loguru import logger

from safesignal.errors import ClassifierError
from safesignal.moderation.models import SafetyCategory, dedupe_categories

DEFAULT_HIVE_URL = "https://api.thehive.ai/api/v2/task/sync"

# Per-class score a label must exceed to count.
LABEL_THRESHOLD = 0.8


@dataclass(frozen=True)
class ImageLabel:
    name: str
    score: float


class ImageClassifier(Protocol):
    def classify_image(self, image_bytes: bytes) -> list[ImageLabel]: ...


LABEL_CATEGORIES: dict[str, SafetyCategory] = {
    # Adult
    "general_nsfw": SafetyCategory.ADULT_IMAGE,
    "general_suggestive": SafetyCategory.ADULT_IMAGE,
    "yes_female_nudity": SafetyCategory.ADULT_IMAGE,
    "yes_male_nudity": SafetyCategory.ADULT_IMAGE,
    "yes_sexual_activity": SafetyCategory.ADULT_IMAGE,
    "yes_realistic_nsfw": SafetyCategory.ADULT_IMAGE,
    "yes_sexual_intent": SafetyCategory.ADULT_IMAGE,
    "yes_sex_toy": SafetyCategory.ADULT_IMAGE,
    "yes_undressed": SafetyCategory.ADULT_IMAGE,
    "animal_genitalia_and_human": SafetyCategory.ADULT_IMAGE,
    "animal_genitalia_only": SafetyCategory.ADULT_IMAGE,
    "animated_animal_genitalia": SafetyCategory.ADULT_IMAGE,
    # Gore
    "very_bloody": SafetyCategory.GRAPHIC_GORE,
    "other_blood": SafetyCategory.GRAPHIC_GORE,
    "human_corpse": SafetyCategory.GRAPHIC_GORE,
    "animated_corpse": SafetyCategory.GRAPHIC_GORE,
    # Self-harm
    "yes_self_harm": SafetyCategory.SELF_HARM,
    "hanging": SafetyCategory.SELF_HARM,
    "noose": SafetyCategory.SELF_HARM,
    "yes_emaciated_body": SafetyCategory.SELF_HARM,
    # Hate / extremism
    "yes_nazi": SafetyCategory.EXTREMISM,
    "yes_kkk": SafetyCategory.EXTREMISM,
    "yes_confederate": SafetyCategory.HATE,
    "yes_middle_finger": SafetyCategory.HARASSMENT,
    # Weapons / terrorism
    "yes_terrorist": SafetyCategory.TERRORISM_CONTENT,
    "gun_in_hand": SafetyCategory.VIOLENT_THREAT,
    "knife_in_hand": SafetyCategory.VIOLENT_THREAT,
}


def map_labels_to_categories(
    labels: Iterable[ImageLabel], threshold: float = LABEL_THRESHOLD
) -> list[SafetyCategory]:
    """Categories for every known label scoring above *threshold*."""
    found = [
        LABEL_CATEGORIES[label.name]
        for label in labels
        if label.name in LABEL_CATEGORIES and round(label.score, 4) > threshold
    ]
    return dedupe_categories(found)


class HiveImageClassifier:
    """Synchronous client for a Hive-style visual moderation endpoint.

    Parameters
    ----------
    api_token : str | None
        Falls back to the ``HIVE_API_TOKEN`` environment variable.
    api_url : str | None
        Falls back to ``HIVE_API_URL``, then the public sync endpoint.
    """

    def __init__(
        self,
        api_token: str | None = None,
        api_url: str | None = None,
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_token = api_token or os.environ.get("HIVE_API_TOKEN", "")
        self.api_url = api_url or os.environ.get("HIVE_API_URL", "") or DEFAULT_HIVE_URL
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def configured(self) -> bool:
        return bool(self.api_token)

    def classify_image(self, image_bytes: bytes) -> list[ImageLabel]:
        if not self.configured:
            raise ClassifierError("Image classifier not configured. Set HIVE_API_TOKEN.")
        try:
            resp = self._client.post(
                self.api_url,
                headers={"accept": "application/json", "authorization": f"token {self.api_token}"},
                files={"image": ("image", image_bytes, "application/octet-stream")},
            )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ClassifierError(f"Image classification request failed: {e}") from e
        return parse_hive_response(payload)

    def close(self) -> None:
        self._client.close()


def parse_hive_response(payload: Any) -> list[ImageLabel]:
    """Extract ``status[0].response.output[0].classes`` as labels."""
    try:
        classes = payload["status"][0]["response"]["output"][0]["classes"]
    except (KeyError, IndexError, TypeError) as e:
        raise ClassifierError(f"Unexpected classifier response shape: {e}") from e
    if not isinstance(classes, list):
        raise ClassifierError("Classifier response has no class list")

    labels: list[ImageLabel] = []
    for item in classes:
        try:
            labels.append(ImageLabel(name=str(item["class"]), score=float(item["score"])))
        except (KeyError, TypeError, ValueError):
            logger.debug("Skipping malformed classifier entry: {}", item)
    return labels
