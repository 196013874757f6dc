"""Administrative CLI for managing prompt definitions."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from podcast_engine.application.dto.prompt_models import PromptVersionFields
from podcast_engine.application.ports.prompt_definition_repository_port import (
    PromptDefinitionRecord,
    PromptNotFoundError,
    PromptVersionConflictError,
)
from podcast_engine.application.services.prompt_registry_service import PromptRegistryService
from podcast_engine.config.settings import load_settings
from podcast_engine.domain.schema_bridge import SchemaValidationError
from podcast_engine.domain.template_compiler import TemplateRenderError
from podcast_engine.infrastructure.logging import configure_logging
from podcast_engine.infrastructure.wiring import build_engine_services

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prompt-registry",
        description="Manage versioned prompt definitions",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create the next version of a prompt key")
    create.add_argument("prompt_key")
    create.add_argument("--template-file", required=True, type=Path)
    create.add_argument("--input-schema", required=True, type=Path)
    create.add_argument("--output-schema", required=True, type=Path)
    create.add_argument("--system-instructions", default="")
    create.add_argument("--instructions", default="", help="User instructions text")
    create.add_argument("--temperature", type=float, default=0.7)
    create.add_argument("--max-tokens", type=int, default=3000)
    create.add_argument("--created-by", default=None)
    create.add_argument("--activate", action="store_true", help="Activate this version")

    compile_ = commands.add_parser("compile", help="Print compiled messages for placeholders")
    compile_.add_argument("prompt_key")
    compile_.add_argument("--version", default="active", help='Version number or "active"')
    compile_.add_argument("--placeholders", required=True, help="JSON object of placeholders")

    activate = commands.add_parser("activate", help="Make a version the active one")
    activate.add_argument("prompt_key")
    activate.add_argument("version", type=int)

    commands.add_parser("list", help="List the active version of every prompt key")

    versions = commands.add_parser("versions", help="List every version of a prompt key")
    versions.add_argument("prompt_key")

    show = commands.add_parser("show", help="Show one prompt definition")
    show.add_argument("prompt_key")
    show.add_argument("--version", default="active", help='Version number or "active"')

    delete = commands.add_parser("delete", help="Delete a prompt key and all its versions")
    delete.add_argument("prompt_key")

    return parser


def parse_version(raw: str) -> int | None:
    """Return None for "active" or a positive version number."""

    if raw == "active":
        return None
    try:
        version = int(raw)
    except ValueError:
        version = 0
    if version < 1:
        raise argparse.ArgumentTypeError('version must be a positive integer or "active"')
    return version


async def run_command(args: argparse.Namespace, *, registry: PromptRegistryService) -> Any:
    """Execute one parsed CLI command and return its JSON-serializable result."""

    if args.command == "create":
        fields = PromptVersionFields(
            template=args.template_file.read_text(encoding="utf-8"),
            input_schema=_read_json_file(args.input_schema),
            output_schema=_read_json_file(args.output_schema),
            system_instructions=args.system_instructions,
            user_instructions=args.instructions,
            temperature=args.temperature,
            max_tokens=args.max_tokens,
            created_by=args.created_by,
        )
        created = await registry.create_new_version(
            prompt_key=args.prompt_key,
            fields=fields,
            activate=args.activate,
        )
        return _record_payload(created.record)
    if args.command == "compile":
        prompt = await registry.get(prompt_key=args.prompt_key, version=parse_version(args.version))
        placeholders = json.loads(args.placeholders)
        if not isinstance(placeholders, dict):
            raise argparse.ArgumentTypeError("placeholders must be a JSON object")
        runtime = prompt.compile(placeholders)
        return [message.model_dump() for message in runtime.to_messages()]
    if args.command == "activate":
        await registry.set_active(prompt_key=args.prompt_key, version=args.version)
        return {"prompt_key": args.prompt_key, "active_version": args.version}
    if args.command == "list":
        return [_record_payload(prompt.record) for prompt in await registry.list_all()]
    if args.command == "versions":
        prompts = await registry.list_all_by_prompt_key(prompt_key=args.prompt_key)
        return [_record_payload(prompt.record) for prompt in prompts]
    if args.command == "show":
        record = await registry.get_details(
            prompt_key=args.prompt_key,
            version=parse_version(args.version),
        )
        return _record_payload(record)
    if args.command == "delete":
        deleted = await registry.delete_prompt_key(prompt_key=args.prompt_key)
        return {"prompt_key": args.prompt_key, "deleted_versions": deleted}
    raise argparse.ArgumentTypeError(f"unknown command: {args.command}")


def _read_json_file(path: Path) -> dict[str, Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise argparse.ArgumentTypeError(f"{path} must contain a JSON object")
    return payload


def _record_payload(record: PromptDefinitionRecord) -> dict[str, Any]:
    return {
        "prompt_key": record.prompt_key,
        "version": record.version,
        "is_active": record.is_active,
        "template": record.template,
        "input_schema": record.input_schema,
        "output_schema": record.output_schema,
        "system_instructions": record.system_instructions,
        "user_instructions": record.user_instructions,
        "temperature": record.temperature,
        "max_tokens": record.max_tokens,
        "created_by": record.created_by,
        "created_at": record.created_at.isoformat(),
    }


async def _run_cli(args: argparse.Namespace) -> Any:
    settings = load_settings()
    configure_logging(level=settings.log_level)
    services = build_engine_services(settings=settings)
    try:
        return await run_command(args, registry=services.prompt_registry)
    finally:
        await services.session_factory.kw["bind"].dispose()


def main(argv: Sequence[str] | None = None) -> int:
    """Run one prompt registry command and print its JSON result."""

    args = build_parser().parse_args(argv)
    try:
        result = asyncio.run(_run_cli(args))
    except (
        PromptNotFoundError,
        PromptVersionConflictError,
        SchemaValidationError,
        TemplateRenderError,
        ValidationError,
        argparse.ArgumentTypeError,
        json.JSONDecodeError,
    ) as error:
        logger.error("prompt_cli_failed command=%s error=%s", args.command, error)
        print(f"error: {error}", file=sys.stderr)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
