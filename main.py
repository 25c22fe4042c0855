#!/usr/bin/env python3
"""CardSmith - output stage of a character card and worldbook generator.

Takes the task progress accumulated by earlier generation steps (a character card,
worldbook entries, quality metrics), chooses what to present, and appends the result
to a stored conversation.

Usage:
    python main.py --progress progress.json
    python main.py --progress progress.json --mode character_output --no-improve
    python main.py --conversation-id <id> --mode progress_report
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from cardsmith.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

MODES = ["auto", "final_output", "character_output", "worldbook_output", "progress_report"]

# Payload keys holding the presentable text, in order of preference
_OUTPUT_KEYS = ("output", "character_output", "worldbook_output", "progress_report")


def load_progress(path: str):
    """Read a task progress JSON file."""
    from cardsmith.memory import TaskProgress

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return TaskProgress.model_validate(data)


def run(args: argparse.Namespace) -> int:
    """Run the output tool once. Returns the process exit code."""
    from cardsmith.agents import ToolContext
    from cardsmith.agents.output import OutputTool
    from cardsmith.services import JsonConversationStore
    from cardsmith.settings import Settings
    from cardsmith.utils.exceptions import CardSmithError
    from cardsmith.utils.logging_config import log_context

    settings = Settings.load()

    with log_context() as correlation_id:
        logger.debug("CLI run %s started", correlation_id)
        try:
            # Validate input before anything is written to the store
            progress = load_progress(args.progress) if args.progress else None

            store = JsonConversationStore(args.conversation_file or settings.conversations_file)
            if args.conversation_id:
                conversation = store.get(args.conversation_id)
            else:
                conversation = store.create(
                    title=args.title,
                    llm_config=settings.default_llm_config(),
                    initial_request=args.request,
                )

            if progress is not None:
                store.update_task_progress(
                    conversation.id,
                    character_data=progress.character_data,
                    worldbook_data=progress.worldbook_data,
                    quality_metrics=progress.quality_metrics,
                    generation_metadata=progress.generation_metadata,
                )
                conversation = store.get(conversation.id)

            context = ToolContext.from_conversation(
                conversation, settings.default_llm_config(), requested_mode=args.mode
            )
            tool = OutputTool(store, settings)
            result = tool.execute(context, self_improve=False if args.no_improve else None)
        except (OSError, ValueError) as e:
            logger.error("Could not read input file: %s", e)
            print(f"Error: could not read input file: {e}", file=sys.stderr)
            return 2
        except CardSmithError as e:
            logger.error("Output generation failed: %s", e)
            print(f"Error: {e}", file=sys.stderr)
            return 1

    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    for key in _OUTPUT_KEYS:
        if key in result.result:
            print(result.result[key])
            break
    if result.evaluation is not None:
        print(
            f"\n[quality {result.evaluation.quality_score}/100 after {result.attempts} attempt(s)]"
        )
    if "message" in result.result:
        print(result.result["message"])
    print(f"\nConversation: {conversation.id}")
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="CardSmith - present generated character cards and worldbooks"
    )
    parser.add_argument(
        "--progress",
        type=str,
        metavar="PATH",
        help="Task progress JSON (character_data, worldbook_data, quality_metrics)",
    )
    parser.add_argument(
        "--conversation-file",
        type=str,
        metavar="PATH",
        help="Conversation store JSON (default: from settings)",
    )
    parser.add_argument(
        "--conversation-id",
        type=str,
        help="Continue an existing conversation instead of creating one",
    )
    parser.add_argument("--mode", choices=MODES, default="auto", help="Output mode (default: auto)")
    parser.add_argument(
        "--request",
        type=str,
        default="Generate a character card and worldbook",
        help="User request recorded when a new conversation is created",
    )
    parser.add_argument("--title", type=str, default="CardSmith session")
    parser.add_argument(
        "--no-improve",
        action="store_true",
        help="Skip the evaluate-and-improve loop",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from settings)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default="default",
        help="Log file path (default: output/logs/cardsmith.log, use 'none' to disable)",
    )

    args = parser.parse_args()

    log_file = None if args.log_file.lower() == "none" else args.log_file
    setup_logging(level=args.log_level or "INFO", log_file=log_file)

    if args.log_level is None:
        from cardsmith.settings import Settings

        try:
            settings = Settings.load()
            if settings.log_level != "INFO":
                from cardsmith.utils.logging_config import set_log_level

                set_log_level(settings.log_level)
        except ValueError as e:
            logger.debug("Could not apply persisted log level: %s", e)

    if not args.progress and not args.conversation_id:
        parser.error("one of --progress or --conversation-id is required")
    if args.progress and not Path(args.progress).exists():
        parser.error(f"progress file not found: {args.progress}")

    sys.exit(run(args))


if __name__ == "__main__":
    main()
