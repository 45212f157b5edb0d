import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from scamshield.schemas.analyze_schemas import AIJudgment
from scamshield.services.judgment_parser import parse_judgment
from scamshield.services.llm_client import JudgmentModel, ModelResponse
from scamshield.services.prompts import (
    SCAM_DETECTION_SYSTEM_PROMPT,
    build_email_prompt,
    build_image_prompt,
    build_text_prompt,
    build_url_prompt,
)

logger = logging.getLogger(__name__)


@dataclass
class TextInput:
    text: str


@dataclass
class UrlInput:
    url: str
    threat_context: Optional[str] = None


@dataclass
class ImageInput:
    image_bytes: bytes
    media_type: str = "image/png"


@dataclass
class EmailInput:
    content: str


JudgmentInput = Union[TextInput, UrlInput, ImageInput, EmailInput]


def build_user_content(judgment_input: JudgmentInput) -> List[Dict[str, Any]]:
    """Turn a judgment input into OpenAI chat content parts."""
    if isinstance(judgment_input, ImageInput):
        b64_image = base64.b64encode(judgment_input.image_bytes).decode("utf-8")
        return [
            {"type": "text", "text": build_image_prompt()},
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:{judgment_input.media_type};base64,{b64_image}",
                    "detail": "high",
                },
            },
        ]

    if isinstance(judgment_input, UrlInput):
        prompt = build_url_prompt(judgment_input.url, judgment_input.threat_context)
    elif isinstance(judgment_input, EmailInput):
        prompt = build_email_prompt(judgment_input.content)
    elif isinstance(judgment_input, TextInput):
        prompt = build_text_prompt(judgment_input.text)
    else:
        raise TypeError(f"unsupported judgment input: {type(judgment_input).__name__}")

    return [{"type": "text", "text": prompt}]


async def judge(model: JudgmentModel, judgment_input: JudgmentInput) -> Tuple[AIJudgment, ModelResponse]:
    """
    Ask the model for a judgment and normalize whatever comes back.

    Model invocation errors propagate; malformed answers do not.
    """
    response = await model.invoke(SCAM_DETECTION_SYSTEM_PROMPT, build_user_content(judgment_input))
    judgment = parse_judgment(response.text)
    logger.debug(
        f"Judgment from {response.model}: score={judgment.risk_score} "
        f"level={judgment.risk_level.value} tokens={response.tokens_used}"
    )
    return judgment, response
