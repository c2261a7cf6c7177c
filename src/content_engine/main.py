"""Entrypoint: command-line access to the content engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from content_engine.config.constants import FEEDBACK_ACTIONS, SUPPORTED_CONTENT_TYPES
from content_engine.config.settings import Settings
from content_engine.engine import Engine, build_engine
from content_engine.exceptions import ContentEngineError, ValidationError
from content_engine.generation.prompt_templates import GENERATION_TASKS
from content_engine.models.schemas import RetrievalFilters
from content_engine.observability.logger import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="content-engine")
    sub = parser.add_subparsers(dest="command", required=True)

    process = sub.add_parser("process", help="Extract, match and persist entities from a file")
    process.add_argument("file", type=Path)
    process.add_argument("--type", dest="content_type", default="brain_dump",
                         choices=sorted(SUPPORTED_CONTENT_TYPES))
    process.add_argument("--user", dest="user_id", type=int, required=True)

    feedback = sub.add_parser("feedback", help="Record feedback on a generated output")
    feedback.add_argument("--output", dest="output_id", type=int, required=True)
    feedback.add_argument("--user", dest="user_id", type=int, required=True)
    feedback.add_argument("--action", required=True, choices=list(FEEDBACK_ACTIONS))
    feedback.add_argument("--confidence", type=float)
    feedback.add_argument("--corrected-content")
    feedback.add_argument("--edit-reason")
    feedback.add_argument("--rejection-reason")
    feedback.add_argument("--context")
    feedback.add_argument("--passive", action="store_true", help="Record as behavioral feedback")

    similar = sub.add_parser("similar", help="Show exemplars similar to a stored input")
    similar.add_argument("input_id", type=int)
    similar.add_argument("--user", dest="user_id", type=int,
                         help="Personalise results for this user")
    similar.add_argument("--limit", type=int)
    similar.add_argument("--output-type")

    generate = sub.add_parser("generate", help="Generate a summary, checklist or other output for a stored input")
    generate.add_argument("input_id", type=int)
    generate.add_argument("--type", dest="output_type", required=True, choices=sorted(GENERATION_TASKS))
    generate.add_argument("--user", dest="user_id", type=int)
    generate.add_argument("--audience", default="technical", choices=["technical", "business", "executive"])

    usage = sub.add_parser("usage", help="Show provider usage and spend")
    usage.add_argument("--period", default="today", choices=["today", "week", "month"])
    return parser


async def run(args: argparse.Namespace, engine: Engine) -> dict | list:
    if args.command == "process":
        content = args.file.read_text(encoding="utf-8")
        result = await engine.pipeline.process(
            content, args.content_type, args.user_id, source="file",
            metadata={"filename": args.file.name},
        )
        return result.to_dict()

    if args.command == "feedback":
        payload = {
            "output_id": args.output_id,
            "user_id": args.user_id,
            "action": args.action,
            "confidence": args.confidence,
            "corrected_content": args.corrected_content,
            "edit_reason": args.edit_reason,
            "rejection_reason": args.rejection_reason,
            "context": args.context,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        capture = engine.feedback.capture_passive if args.passive else engine.feedback.capture_inline
        feedback = await capture(payload)
        return {"feedback_id": feedback.id, "action": feedback.action, "confidence": feedback.confidence}

    if args.command == "similar":
        filters = RetrievalFilters(output_type=args.output_type)
        if args.user_id is not None:
            exemplars = await engine.personalization.find_personalized(
                args.input_id, args.user_id, filters, limit=args.limit
            )
        else:
            exemplars = await engine.retrieval.find_similar(args.input_id, filters, limit=args.limit)
        return [
            {
                "input_id": e.input.id,
                "output_id": e.output.id,
                "output_type": e.output.output_type,
                "feedback_action": e.feedback.action,
                "feedback_confidence": e.feedback.confidence,
                "similarity": round(e.similarity, 4),
                "combined_score": round(e.combined_score, 4) if e.combined_score is not None else None,
            }
            for e in exemplars
        ]

    if args.command == "generate":
        output = await engine.pipeline.generate(
            args.input_id, args.output_type, user_id=args.user_id, audience=args.audience
        )
        return {
            "output_id": output.id,
            "output_type": output.output_type,
            "content": output.content,
            "exemplar_ids": output.metadata["exemplar_ids"],
        }

    stats = await engine.gateway.usage_stats(args.period)
    return stats.model_dump()


async def _main(args: argparse.Namespace) -> int:
    settings = Settings()
    setup_logging(settings.log_level, settings.log_json)
    engine = await build_engine(settings)
    try:
        output = await run(args, engine)
    except ValidationError as e:
        print(json.dumps({"error": str(e), "errors": e.errors}), file=sys.stderr)
        return 2
    except ContentEngineError as e:
        print(json.dumps({"error": str(e), "type": type(e).__name__}), file=sys.stderr)
        return 1
    finally:
        engine.close()
    print(json.dumps(output, indent=2, default=str))
    return 0


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
