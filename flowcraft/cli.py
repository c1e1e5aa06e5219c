"""
Command-line interface for flowcraft.

    flowcraft validate FILE
    flowcraft convert FILE [-o OUT] [--json]
    flowcraft run FILE --input TEXT [--stream] [--echo] [--max-iterations N] [--fail-fast]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from flowcraft.codec import export_workflow, import_workflow
from flowcraft.config import InvalidSettingError, settings
from flowcraft.domain.events import ExecutionStatus
from flowcraft.domain.models import StepKind, WorkflowDefinition
from flowcraft.exceptions import FlowcraftError, WorkflowParseError
from flowcraft.llm import AgentInvoker, EchoInvoker, OpenAIInvoker
from flowcraft.utils.logging import configure_logging
from flowcraft.workflow.engine import FailurePolicy, WorkflowEngine
from flowcraft.workflow.validator import ValidationResult, validate_workflow


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowcraft", description="flowcraft - declarative workflow engine"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser("validate", help="Check a workflow file")
    validate_parser.add_argument("file", help="Workflow YAML file")

    convert_parser = subparsers.add_parser(
        "convert", help="Rewrite a workflow file in the canonical dialect"
    )
    convert_parser.add_argument("file", help="Workflow YAML file")
    convert_parser.add_argument("-o", "--output", help="Write to this file instead of stdout")
    convert_parser.add_argument(
        "--json", action="store_true", help="Emit the graph model as JSON instead of YAML"
    )

    run_parser = subparsers.add_parser("run", help="Execute a workflow file")
    run_parser.add_argument("file", help="Workflow YAML file")
    run_parser.add_argument("--input", default="", help="User input for the run")
    run_parser.add_argument(
        "--stream", action="store_true", help="Print events as server-sent event lines"
    )
    run_parser.add_argument(
        "--echo", action="store_true", help="Answer agent steps by echoing the input (offline)"
    )
    run_parser.add_argument(
        "--max-iterations",
        type=positive_int,
        default=None,
        help="Override the step cap for this run",
    )
    run_parser.add_argument(
        "--fail-fast", action="store_true", help="Stop the run at the first failed step"
    )

    return parser


def load_workflow(path: str) -> WorkflowDefinition:
    return import_workflow(Path(path).read_text(encoding="utf-8"))


def print_issues(result: ValidationResult) -> None:
    for issue in result.errors:
        print(f"error   [{issue.type.value}] {issue.message}", file=sys.stderr)
    for issue in result.warnings:
        print(f"warning [{issue.type.value}] {issue.message}", file=sys.stderr)


def cmd_validate(args: argparse.Namespace) -> int:
    definition = load_workflow(args.file)
    result = validate_workflow(definition)
    print_issues(result)
    if not result.is_valid:
        return 1
    print(f"{definition.name or definition.id}: ok ({len(definition.steps)} steps)")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    definition = load_workflow(args.file)
    if args.json:
        text = json.dumps(definition.model_dump(mode="json"), indent=2, ensure_ascii=False)
    else:
        text = export_workflow(definition)

    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
    else:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
    return 0


def _build_invoker(args: argparse.Namespace, definition: WorkflowDefinition) -> AgentInvoker | None:
    if args.echo:
        return EchoInvoker()
    if not definition.steps_by_kind(StepKind.AGENT_INVOKE):
        return None
    return OpenAIInvoker()


async def _run(args: argparse.Namespace, definition: WorkflowDefinition) -> int:
    engine = WorkflowEngine(
        _build_invoker(args, definition),
        failure_policy=FailurePolicy.ABORT if args.fail_fast else None,
        max_iterations=args.max_iterations,
    )

    if args.stream:
        async for event in engine.stream(definition, args.input):
            sys.stdout.write(event.to_sse())
            sys.stdout.flush()
        return 0

    result = await engine.run(definition, args.input)
    print(result.output)
    for record in result.failed_steps:
        print(f"step {record.step_id} failed: {record.error}", file=sys.stderr)
    return 0 if result.status == ExecutionStatus.COMPLETED else 1


def cmd_run(args: argparse.Namespace) -> int:
    definition = load_workflow(args.file)
    result = validate_workflow(definition)
    print_issues(result)
    if not result.is_valid:
        return 1
    return asyncio.run(_run(args, definition))


COMMANDS = {
    "validate": cmd_validate,
    "convert": cmd_convert,
    "run": cmd_run,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(settings.log_level, settings.log_json)

    try:
        return COMMANDS[args.command](args)
    except WorkflowParseError as e:
        print(f"parse error: {e.message}", file=sys.stderr)
        if e.raw_error:
            print(e.raw_error, file=sys.stderr)
        return 1
    except (FlowcraftError, InvalidSettingError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
