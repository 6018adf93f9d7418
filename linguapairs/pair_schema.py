"""
LinguaPairs Backend - Structured output schema for pair generation
JSON Schema handed to the LLM plus the matching pydantic validation of its reply
"""

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from typing import Any, Dict, List, Literal, Union
from linguapairs.constants import PAIR_REGISTERS, PAIR_TERM_MAX_LENGTH, PAIR_TYPES
from linguapairs.errors import GenerationOutputError
import json

SCHEMA_NAME = "pair_generation"

_PAIR_ITEM_PROPERTIES = {
    "term_a": {"type": "string", "minLength": 1, "maxLength": PAIR_TERM_MAX_LENGTH},
    "term_b": {"type": "string", "minLength": 1, "maxLength": PAIR_TERM_MAX_LENGTH},
    "type": {"type": "string", "enum": list(PAIR_TYPES)},
    "register": {"type": "string", "enum": list(PAIR_REGISTERS)},
}


def build_pair_generation_json_schema(count: int) -> Dict[str, Any]:
    """
    Build the strict JSON Schema used as the provider's response_format.
    minItems and maxItems are both set to ``count`` to enforce the exact size.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValueError(f"count must be a positive integer, got {count!r}")

    item_schema = {
        "type": "object",
        "properties": {name: dict(spec) for name, spec in _PAIR_ITEM_PROPERTIES.items()},
        "required": ["term_a", "term_b", "type", "register"],
        "additionalProperties": False,
    }

    return {
        "type": "object",
        "properties": {
            "pairs": {
                "type": "array",
                "items": item_schema,
                "minItems": count,
                "maxItems": count,
            },
        },
        "required": ["pairs"],
        "additionalProperties": False,
    }


class PairItemOutput(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    term_a: str = Field(..., min_length=1, max_length=PAIR_TERM_MAX_LENGTH)
    term_b: str = Field(..., min_length=1, max_length=PAIR_TERM_MAX_LENGTH)
    type: Literal["words", "phrases", "mini-phrases"]
    register_: Literal["neutral", "informal", "formal"] = Field(..., alias="register")


class PairGenerationOutput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pairs: List[PairItemOutput]


def parse_pair_generation_output(payload: Union[str, Dict[str, Any]], count: int) -> PairGenerationOutput:
    """Validate a provider reply against the schema built for ``count`` items"""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise GenerationOutputError(f"Response is not valid JSON: {e}") from e

    try:
        output = PairGenerationOutput.model_validate(payload)
    except ValidationError as e:
        raise GenerationOutputError(f"Response does not match pair schema: {e.error_count()} errors") from e

    if len(output.pairs) != count:
        raise GenerationOutputError(f"Expected exactly {count} pairs, got {len(output.pairs)}")

    return output
