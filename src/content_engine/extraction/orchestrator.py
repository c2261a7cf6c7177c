"""Entity extraction: validate content, prompt the gateway, normalise the response."""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from content_engine.config.constants import SUPPORTED_CONTENT_TYPES
from content_engine.config.settings import Settings
from content_engine.exceptions import ContentInvalidError, ExtractionParseError
from content_engine.extraction.json_recovery import JsonResponseParser
from content_engine.generation.gateway import CompletionGateway
from content_engine.generation.prompt_templates import build_extraction_prompt
from content_engine.models.domain import Exemplar
from content_engine.models.schemas import (
    ActionItemEntity,
    CompletionOptions,
    DecisionEntity,
    EntityBundle,
    MeetingEntity,
    ReleaseEntity,
    StakeholderEntity,
    WorkstreamEntity,
)
from content_engine.observability.logger import get_logger
from content_engine.retrieval.rag_prompt import format_exemplar_block

logger = get_logger("extraction")

ENTITY_SCHEMAS: dict[str, type[BaseModel]] = {
    "stakeholders": StakeholderEntity,
    "workstreams": WorkstreamEntity,
    "releases": ReleaseEntity,
    "action_items": ActionItemEntity,
    "meetings": MeetingEntity,
    "decisions": DecisionEntity,
}


class EntityExtractor:
    def __init__(
        self,
        gateway: CompletionGateway,
        settings: Settings,
        parser: JsonResponseParser | None = None,
    ) -> None:
        self._gateway = gateway
        self._settings = settings
        self._parser = parser or JsonResponseParser()

    def validate(self, content: str, content_type: str) -> str:
        """Return the stripped content or raise ContentInvalidError."""
        if content_type not in SUPPORTED_CONTENT_TYPES:
            raise ContentInvalidError(
                f"Unsupported content type '{content_type}'. "
                f"Expected one of: {', '.join(sorted(SUPPORTED_CONTENT_TYPES))}"
            )
        text = (content or "").strip()
        if len(text) < self._settings.content_min_chars:
            raise ContentInvalidError(
                f"Content must be at least {self._settings.content_min_chars} characters"
            )
        if len(text) > self._settings.content_max_chars:
            raise ContentInvalidError(
                f"Content must not exceed {self._settings.content_max_chars} characters"
            )
        return text

    async def extract(
        self,
        content: str,
        content_type: str,
        exemplars: list[Exemplar] | None = None,
        user_id: int | None = None,
    ) -> EntityBundle:
        bundle, _ = await self.extract_with_metadata(content, content_type, exemplars, user_id)
        return bundle

    async def extract_with_metadata(
        self,
        content: str,
        content_type: str,
        exemplars: list[Exemplar] | None = None,
        user_id: int | None = None,
    ) -> tuple[EntityBundle, dict]:
        """Like ``extract`` but also returns the gateway's call metadata (provider, model, job)."""
        text = self.validate(content, content_type)

        prompt = build_extraction_prompt(text, content_type)
        if exemplars:
            prompt = (
                format_exemplar_block(exemplars, self._settings.rag_max_examples)
                + "\n"
                + prompt
            )

        result = await self._gateway.complete(
            prompt,
            CompletionOptions(
                max_tokens=self._settings.extraction_max_tokens,
                temperature=self._settings.extraction_temperature,
                method="extract_entities",
                user_id=user_id,
            ),
        )

        try:
            data = self._parser.parse(result.content)
        except ExtractionParseError as e:
            logger.warning(
                "extraction_parse_failed",
                error=str(e),
                response_length=len(result.content),
                response_preview=result.content[:200],
            )
            return EntityBundle(), result.metadata

        bundle = self.normalize(data)
        logger.info(
            "entities_extracted",
            content_type=content_type,
            exemplars=len(exemplars or []),
            **{name: len(getattr(bundle, name)) for name in ENTITY_SCHEMAS},
        )
        return bundle, result.metadata

    def normalize(self, data: dict) -> EntityBundle:
        """Validate each item on its own; malformed items are dropped, not fatal."""
        fields: dict = {}
        for name, schema in ENTITY_SCHEMAS.items():
            raw_items = data.get(name)
            if not isinstance(raw_items, list):
                raw_items = []
            items = []
            for raw in raw_items:
                if not isinstance(raw, dict):
                    continue
                try:
                    items.append(schema.model_validate(raw))
                except PydanticValidationError as e:
                    logger.debug("entity_dropped", entity_type=name, errors=e.error_count())
            fields[name] = items

        summary = data.get("summary")
        fields["summary"] = summary if isinstance(summary, str) else ""
        return EntityBundle(**fields)
