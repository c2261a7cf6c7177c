"""Content pipeline: store, embed, retrieve exemplars, extract, match, persist, generate."""

from __future__ import annotations

import structlog

from content_engine.config.constants import OUTPUT_TYPES
from content_engine.config.settings import Settings
from content_engine.embeddings.service import EmbeddingService
from content_engine.exceptions import (
    ContentEngineError,
    ContentInvalidError,
    EmbeddingError,
    NotFoundError,
)
from content_engine.extraction.orchestrator import EntityExtractor
from content_engine.generation.gateway import CompletionGateway
from content_engine.generation.prompt_templates import GENERATION_TASKS, build_generation_prompt
from content_engine.models.domain import (
    ContentItem,
    Exemplar,
    GeneratedOutput,
    ProcessingResult,
)
from content_engine.models.schemas import (
    BatchProcessFailure,
    BatchProcessingResult,
    CompletionOptions,
    EntityBundle,
    RagPromptConfig,
    RetrievalFilters,
)
from content_engine.observability.logger import get_logger
from content_engine.observability.metrics import log_match_metrics
from content_engine.observability.tracing import TraceContext
from content_engine.persistence.linker import RelationshipLinker
from content_engine.reconciliation.confirmation import generate_confirmation_tasks
from content_engine.reconciliation.matcher import EntityMatcher
from content_engine.retrieval.personalization import PersonalizedRetriever
from content_engine.retrieval.rag_prompt import build_rag_prompt
from content_engine.storage.sqlite_content_store import SQLiteContentStore

logger = get_logger("content_pipeline")

EXTRACTION_OUTPUT_TYPE = "entity_extraction"


class ContentPipeline:
    def __init__(
        self,
        extractor: EntityExtractor,
        matcher: EntityMatcher,
        linker: RelationshipLinker,
        store: SQLiteContentStore,
        gateway: CompletionGateway,
        settings: Settings,
        embeddings: EmbeddingService | None = None,
        retriever: PersonalizedRetriever | None = None,
    ) -> None:
        self._extractor = extractor
        self._matcher = matcher
        self._linker = linker
        self._store = store
        self._gateway = gateway
        self._settings = settings
        self._embeddings = embeddings
        self._retriever = retriever

    async def process(
        self,
        content: str,
        content_type: str,
        user_id: int,
        metadata: dict | None = None,
        source: str = "manual",
    ) -> ProcessingResult:
        trace = TraceContext()
        with structlog.contextvars.bound_contextvars(user_id=user_id, trace_id=trace.trace_id):
            try:
                return await self._process(trace, content, content_type, user_id, metadata, source)
            except ContentEngineError as e:
                logger.warning("content_processing_failed", error=str(e), error_type=type(e).__name__)
                raise
            except Exception:
                logger.exception("content_processing_crashed")
                raise
            finally:
                structlog.contextvars.unbind_contextvars("content_id")

    async def _process(
        self,
        trace: TraceContext,
        content: str,
        content_type: str,
        user_id: int,
        metadata: dict | None,
        source: str,
    ) -> ProcessingResult:
        # STEP 1: Validate before anything is stored or sent
        with trace.span("validate"):
            text = self._extractor.validate(content, content_type)

        # STEP 2: Store the input
        with trace.span("store_input"):
            item = await self._store.save_input(
                ContentItem(
                    user_id=user_id,
                    content=text,
                    content_type=content_type,
                    source=source,
                    metadata=metadata or {},
                )
            )
        structlog.contextvars.bind_contextvars(content_id=item.id)

        # STEP 3-4: Embed the input and pull personalised exemplars
        exemplars: list[Exemplar] = []
        with trace.span("retrieve_exemplars"):
            if await self._embed("input", item.id):
                exemplars = await self._exemplars(item.id, user_id)

        # STEP 5: Extract
        with trace.span("extract"):
            bundle, call = await self._extractor.extract_with_metadata(
                text, content_type, exemplars=exemplars, user_id=user_id
            )

        # STEP 6-7: Store and embed the extraction output
        with trace.span("store_output"):
            output = await self._save_output(item, bundle, call, exemplars)
            await self._embed("output", output.id)

        # STEP 8-9: Match and rank confirmation tasks
        with trace.span("match"):
            match_results = await self._matcher.match(bundle, user_id)
            tasks = generate_confirmation_tasks(
                match_results,
                low_confidence_threshold=self._settings.low_confidence_threshold,
                new_entity_threshold=self._settings.new_entity_confirmation_threshold,
            )
        summary = match_results.summary()
        log_match_metrics(item.id, summary["exact"], summary["fuzzy"], summary["new"], len(tasks))

        # STEP 10: Persist
        with trace.span("persist"):
            await self._linker.persist(bundle, match_results, item)

        logger.info(
            "content_processed",
            output_id=output.id,
            entities=len(bundle.items()),
            exemplars=len(exemplars),
            latency_ms=round(trace.elapsed_ms, 2),
            spans=trace.timings(),
        )
        return ProcessingResult(
            content_item=item,
            output=output,
            entities=bundle,
            match_results=match_results,
            confirmation_tasks=tasks,
            exemplars_used=len(exemplars),
            timings=trace.timings(),
        )

    async def process_batch(
        self, items: list[str], content_type: str, user_id: int
    ) -> BatchProcessingResult:
        result = BatchProcessingResult()
        for index, content in enumerate(items):
            try:
                processed = await self.process(content, content_type, user_id)
                result.successful.append({"index": index, **processed.to_dict()})
            except ContentEngineError as e:
                result.failed.append(
                    BatchProcessFailure(index=index, error=str(e), error_type=type(e).__name__)
                )
        result.total_processed = len(items)
        result.success_count = len(result.successful)
        result.error_count = len(result.failed)
        logger.info(
            "content_batch_processed",
            user_id=user_id,
            total=result.total_processed,
            success_count=result.success_count,
            error_count=result.error_count,
        )
        return result

    async def regenerate(self, output_id: int) -> GeneratedOutput:
        """Re-run extraction for an output's input and store the next version."""
        previous = await self._store.get_output(output_id)
        if previous is None:
            raise NotFoundError(f"Output {output_id} not found")
        item = await self._store.get_input(previous.input_id)
        if item is None:
            raise NotFoundError(f"Input {previous.input_id} not found")

        exemplars = await self._exemplars(item.id, item.user_id)
        bundle, call = await self._extractor.extract_with_metadata(
            item.content, item.content_type, exemplars=exemplars, user_id=item.user_id
        )
        output = await self._save_output(item, bundle, call, exemplars, previous=previous)
        await self._embed("output", output.id)
        logger.info(
            "output_regenerated",
            content_id=item.id,
            output_id=output.id,
            parent_output_id=previous.id,
            version=output.version,
        )
        return output

    async def generate(
        self,
        input_id: int,
        output_type: str,
        user_id: int | None = None,
        audience: str = "technical",
    ) -> GeneratedOutput:
        """Generate a typed output (summary, checklist, report...) for a stored input.

        The task prompt is prefixed with the user's personalised exemplars of the
        same output type, so accepted past outputs steer the new one.
        """
        if output_type not in OUTPUT_TYPES or output_type not in GENERATION_TASKS:
            raise ContentInvalidError(
                f"Unsupported output type '{output_type}'. "
                f"Expected one of: {', '.join(sorted(GENERATION_TASKS))}"
            )
        item = await self._store.get_input(input_id)
        if item is None:
            raise NotFoundError(f"Input {input_id} not found")
        user_id = item.user_id if user_id is None else user_id
        task = GENERATION_TASKS[output_type]

        exemplars = await self._exemplars(item.id, user_id, output_type=output_type)
        prompt = build_generation_prompt(
            output_type, item.content, item.content_type, audience=audience
        )
        if exemplars:
            prompt = build_rag_prompt(
                prompt, exemplars, RagPromptConfig(max_examples=self._settings.rag_max_examples)
            )

        result = await self._gateway.complete(
            prompt,
            CompletionOptions(
                max_tokens=task.max_tokens,
                temperature=task.temperature,
                complexity=task.complexity,
                method=f"generate_{output_type}",
                user_id=user_id,
            ),
        )
        output = await self._store.save_output(
            GeneratedOutput(
                input_id=item.id,
                content=result.content.strip(),
                output_type=output_type,
                ai_model=result.metadata.get("model"),
                metadata={
                    "provider": result.metadata.get("provider"),
                    "job_id": result.metadata.get("job_id"),
                    "exemplar_ids": [e.output.id for e in exemplars],
                    "tokens_used": result.tokens_used,
                    "cost": result.cost,
                },
            )
        )
        await self._embed("output", output.id)
        logger.info(
            "content_generated",
            content_id=item.id,
            output_id=output.id,
            output_type=output_type,
            exemplars=len(exemplars),
            tokens_used=result.tokens_used,
        )
        return output

    async def _save_output(
        self,
        item: ContentItem,
        bundle: EntityBundle,
        call: dict,
        exemplars: list[Exemplar],
        previous: GeneratedOutput | None = None,
    ) -> GeneratedOutput:
        quality = bundle.mean_confidence()
        return await self._store.save_output(
            GeneratedOutput(
                input_id=item.id,
                content=bundle.model_dump_json(),
                output_type=EXTRACTION_OUTPUT_TYPE,
                ai_model=call.get("model"),
                quality_score=round(quality, 4) if quality is not None else None,
                version=previous.version + 1 if previous else 1,
                parent_output_id=previous.id if previous else None,
                metadata={
                    "provider": call.get("provider"),
                    "job_id": call.get("job_id"),
                    "exemplar_ids": [e.output.id for e in exemplars],
                },
            )
        )

    async def _embed(self, owner_kind: str, owner_id: int) -> bool:
        if self._embeddings is None:
            return False
        try:
            if owner_kind == "input":
                await self._embeddings.embed_input(owner_id)
            else:
                await self._embeddings.embed_output(owner_id)
        except EmbeddingError as e:
            logger.warning("embedding_failed", owner_kind=owner_kind, owner_id=owner_id, error=str(e))
            return False
        return True

    async def _exemplars(
        self, input_id: int, user_id: int, output_type: str | None = None
    ) -> list[Exemplar]:
        if self._retriever is None:
            return []
        filters = RetrievalFilters(output_type=output_type) if output_type else None
        return await self._retriever.find_personalized(
            input_id, user_id, filters=filters, limit=self._settings.rag_max_examples
        )
