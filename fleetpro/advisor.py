"""Advisory service: fleet advice and photo field extraction via Gemini."""

import base64
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from .config import Settings
from .errors import AdvisoryError
from .evaluator import evaluate
from .loader import vehicle_to_dict
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

ADVICE_SYSTEM = """
You are a fleet maintenance advisor for a company running road vehicles
(usage in km) and construction machines (usage in operating hours).

You receive the fleet as JSON. Each vehicle carries its maintenance history
(most recent first) and a computed dueStatus. A vehicle is flagged once 90%
of a usage, calendar or legal-inspection interval has been consumed.

Analyse the state of the vehicles and give concrete advice on maintenance,
upcoming deadlines and operational planning. Answer professionally, in the
language of the question, using markdown. If the data does not answer the
question, say so. Never invent vehicles or readings.
"""

IMAGE_PROMPT = (
    "Analyse this photo of a vehicle or of a maintenance document. Extract the "
    "brand, model and license plate if visible. Reply ONLY with a JSON object "
    'with the optional string keys "brand", "model" and "licensePlate".'
)

IMAGE_FIELDS = ("brand", "model", "licensePlate")


def fleet_snapshot(vehicles: List[Vehicle], now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Fleet as plain dicts with due status attached, photos left out."""
    snapshot = []
    for vehicle in vehicles:
        d = vehicle_to_dict(vehicle)
        d.pop("photo", None)
        status = evaluate(vehicle, now)
        d["dueStatus"] = {"overdue": status.overdue, "reason": status.reason.value}
        snapshot.append(d)
    return snapshot


def _response_text(response: Any) -> str:
    """Text of a chat model response (content may be a list of parts)."""
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(part.get("text", ""))
        content = "".join(parts)
    return str(content or "")


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_image_fields(text: str) -> Dict[str, str]:
    """Keep the known, non-empty string fields of the model's JSON reply."""
    try:
        data = json.loads(_strip_fences(text) or "{}")
    except json.JSONDecodeError as e:
        raise AdvisoryError(f"Image analysis returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AdvisoryError("Image analysis returned something other than an object")
    return {
        key: data[key].strip()
        for key in IMAGE_FIELDS
        if isinstance(data.get(key), str) and data[key].strip()
    }


def to_data_uri(image: Union[bytes, str], mime_type: str = "image/jpeg") -> str:
    """Raw bytes or base64 text (with or without a data: prefix) as a data URI."""
    if isinstance(image, bytes):
        return f"data:{mime_type};base64,{base64.b64encode(image).decode('ascii')}"
    if image.startswith("data:"):
        return image
    return f"data:{mime_type};base64,{image}"


class FleetAdvisor:
    """
    Best-effort advice over the fleet and field extraction from photos.

    Every failure (missing key, network, timeout, unusable reply) surfaces as
    AdvisoryError. Chat models can be injected for tests.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        advice_llm: Any = None,
        vision_llm: Any = None,
    ):
        self.settings = settings or Settings.from_env()
        self._advice_llm = advice_llm
        self._vision_llm = vision_llm

    def _make_llm(self, model: str) -> ChatGoogleGenerativeAI:
        if not self.settings.gemini_api_key:
            raise AdvisoryError("GEMINI_API_KEY is not configured")
        return ChatGoogleGenerativeAI(
            model=model,
            api_key=self.settings.gemini_api_key,
            temperature=0.2,
            timeout=self.settings.advisor_timeout,
            max_retries=self.settings.advisor_max_retries,
        )

    @property
    def advice_llm(self):
        if self._advice_llm is None:
            self._advice_llm = self._make_llm(self.settings.advice_model)
        return self._advice_llm

    @property
    def vision_llm(self):
        if self._vision_llm is None:
            self._vision_llm = self._make_llm(self.settings.vision_model)
        return self._vision_llm

    def advise(self, vehicles: List[Vehicle], query: str) -> str:
        """Free-text advice for a question about the given fleet snapshot."""
        if not query or not query.strip():
            raise AdvisoryError("Empty question")
        fleet_json = json.dumps(fleet_snapshot(vehicles), indent=2, default=str)
        messages = [
            SystemMessage(content=ADVICE_SYSTEM),
            HumanMessage(content=f"Fleet data:\n{fleet_json}\n\nQuestion: {query}"),
        ]
        try:
            response = self.advice_llm.invoke(messages)
        except AdvisoryError:
            raise
        except Exception as e:
            logger.warning("Advice request failed: %s", e)
            raise AdvisoryError("The advisory service is unavailable") from e
        answer = _response_text(response).strip()
        if not answer:
            raise AdvisoryError("The advisory service returned an empty answer")
        return answer

    def analyze_image(self, image: Union[bytes, str], mime_type: str = "image/jpeg") -> Dict[str, str]:
        """Extract brand, model and license plate from a photo; any may be absent."""
        message = HumanMessage(
            content=[
                {"type": "text", "text": IMAGE_PROMPT},
                {"type": "image_url", "image_url": to_data_uri(image, mime_type)},
            ]
        )
        try:
            response = self.vision_llm.invoke([message])
        except AdvisoryError:
            raise
        except Exception as e:
            logger.warning("Image analysis failed: %s", e)
            raise AdvisoryError("The advisory service is unavailable") from e
        return parse_image_fields(_response_text(response))
