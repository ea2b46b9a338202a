"""Natural-language command oracle.

Hands raw user text to an LLM with a fixed instruction and expects a JSON
intent back. The oracle is a black box: any failure is fatal for that one
request and is never retried.
"""

import json

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError
import structlog

from .config import Settings
from .constants import DEFAULT_ENV_PATH, PORT_RANGES
from .errors import OracleError
from .llm import create_chat_model
from .models import CommandIntent

logger = structlog.get_logger(__name__)

ORACLE_PROMPT = """You are the natural language interface of "Port Pal", a tool that assigns
free localhost ports to projects and writes them to the project's .env file.

Your job is to PARSE the user's request and extract the parameters for:
    python port_pal.py --type <type> --name <name> --env <path>

Application types and their port ranges:
{ranges}

Rules:
1. "type" must be one of: {types}. Omit it if the user did not say.
2. "name" is the project name. Omit it if the user did not say.
3. "env" is the path to the .env file. If not given, use "{default_env}".
4. If the path is suspicious (starts with / or contains ..), explain why in "validation_error".
5. Set "is_help_request" to true if the user is only greeting or asking for help.

Respond ONLY with valid JSON:
{{
    "type": "web",
    "name": "my-project",
    "env": "./.env",
    "validation_error": null,
    "is_help_request": false
}}
"""


def build_system_prompt() -> str:
    """Render the fixed oracle instruction from the port range table."""
    ranges = "\n".join(
        f"- {app_type.value}: {port_range.start}-{port_range.end}"
        for app_type, port_range in PORT_RANGES.items()
    )
    types = ", ".join(app_type.value for app_type in PORT_RANGES)
    return ORACLE_PROMPT.format(ranges=ranges, types=types, default_env=DEFAULT_ENV_PATH)


def _parse_llm_response(content: str) -> CommandIntent:
    """Parse the JSON intent, tolerating markdown code fences."""
    text = content.strip()
    if text.startswith("```"):
        lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
        text = "\n".join(lines)

    if not text:
        raise OracleError("Failed to parse command intent.")

    try:
        return CommandIntent.model_validate(json.loads(text))
    except json.JSONDecodeError as e:
        logger.warning("oracle_json_parse_failed", error=str(e), content=content[:200])
        raise OracleError("Failed to parse command intent.") from e
    except ValidationError as e:
        logger.warning("oracle_schema_mismatch", error=str(e), content=content[:200])
        raise OracleError("Command intent did not match the expected schema.") from e


class CommandOracle:
    """Turns free text into a CommandIntent using an LLM."""

    def __init__(self, llm: BaseChatModel):
        self.llm = llm
        self.system_prompt = build_system_prompt()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommandOracle":
        try:
            llm = create_chat_model(
                settings.llm_provider, settings.llm_model, settings.llm_temperature
            )
        except (KeyError, ValueError) as e:
            raise OracleError(f"Oracle unavailable: {e}") from e
        return cls(llm)

    async def parse(self, text: str) -> CommandIntent:
        """Ask the LLM for the intent behind ``text``.

        Raises:
            OracleError: the call failed or returned nothing usable.
        """
        messages = [
            SystemMessage(content=self.system_prompt),
            HumanMessage(content=text),
        ]

        try:
            response = await self.llm.ainvoke(messages)
        except Exception as e:
            logger.error("oracle_call_failed", error=str(e), error_type=type(e).__name__)
            raise OracleError(f"Oracle request failed: {e}") from e

        content = response.content if isinstance(response.content, str) else ""
        intent = _parse_llm_response(content)
        logger.info(
            "intent_parsed",
            type=intent.type.value if intent.type else None,
            name=intent.name,
            is_help_request=intent.is_help_request,
        )
        return intent
