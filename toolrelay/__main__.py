"""
toolrelay CLI entry point.

Provides commands to inspect configuration and tool documentation, ask a
one-off question, and run the OpenAI-compatible server.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from pydantic import ValidationError

from toolrelay import __version__
from toolrelay.config.logging import get_logger, mask_secret, setup_logging
from toolrelay.config.settings import Settings, load_settings
from toolrelay.llm import LLMClient, LLMError, ToolCallingLLM
from toolrelay.llm.models import ChatMessage
from toolrelay.tools import ToolError, ToolRegistry
from toolrelay.tools.builtin import register_builtin_tools


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="toolrelay",
        description="Key-rotating LLM client with text-protocol tool calling",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"toolrelay {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    # Tools command
    tools_parser = subparsers.add_parser(
        "tools",
        help="Print the tool documentation injected into the system prompt",
    )
    tools_parser.add_argument(
        "--tools",
        default=None,
        help="Comma-separated tool names (default: every built-in tool)",
    )

    # Chat command
    chat_parser = subparsers.add_parser(
        "chat",
        help="Ask a single question and print the answer",
    )
    chat_parser.add_argument(
        "question",
        help='Question to ask, e.g. "What is 15 * 23 + 7?"',
    )
    chat_parser.add_argument(
        "--tools",
        default=None,
        help="Comma-separated tool names to enable (default: TOOLS__ENABLED from config)",
    )
    chat_parser.add_argument(
        "--system",
        default=None,
        help="System prompt to start the conversation with",
    )
    chat_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Sampling seed, for backends that support it",
    )

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the OpenAI-compatible HTTP server",
    )
    serve_parser.add_argument(
        "--host",
        default=None,
        help="Bind address (default: SERVER__HOST from config)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Bind port (default: SERVER__PORT from config)",
    )
    serve_parser.add_argument(
        "--tools",
        default=None,
        help="Comma-separated tool names to enable (default: TOOLS__ENABLED from config)",
    )

    return parser


def _split_names(value: str | None) -> list[str] | None:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def build_registry(settings: Settings) -> ToolRegistry:
    """Registry with the built-in tools, using the configured call marker."""
    registry = ToolRegistry(prefix_char=settings.tools.prefix_char)
    register_builtin_tools(registry)
    return registry


def build_backend(
    settings: Settings,
    tool_names: list[str] | None = None,
) -> LLMClient | ToolCallingLLM:
    """
    Build the chat backend described by settings.

    Args:
        settings: Application settings
        tool_names: Tools to enable; None falls back to TOOLS__ENABLED.
                    An empty selection gives a plain LLMClient.

    Raises:
        pydantic.ValidationError: If no API keys are configured
        ToolNotFoundError: If a selected tool is not registered
    """
    client = LLMClient(settings.llm.to_config(), retries=settings.llm.retries)
    names = settings.tools.enabled if tool_names is None else tool_names
    if not names:
        return client
    return ToolCallingLLM(
        client,
        build_registry(settings),
        names,
        chain_format=settings.tools.chain_format,
        call_delay=settings.tools.call_delay,
        max_tool_calls=settings.tools.max_tool_calls,
    )


def _load_backend(settings: Settings, tools_arg: str | None) -> LLMClient | ToolCallingLLM | None:
    """build_backend() for CLI commands: log the problem and return None on bad config."""
    logger = get_logger(__name__)
    try:
        return build_backend(settings, _split_names(tools_arg))
    except ValidationError as e:
        logger.error(
            f"Invalid LLM configuration: {e}\n"
            'Check LLM__API_KEYS=\'["sk-..."]\' in your .env file.'
        )
    except ToolError as e:
        logger.error(str(e))
    return None


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("\n=== toolrelay Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nLLM Base URL: {settings.llm.base_url}")
    logger.info(f"LLM Provider: {settings.llm.provider}")
    logger.info(f"LLM Model: {settings.llm.model}")
    if settings.llm.api_keys:
        masked = ", ".join(mask_secret(k) for k in settings.llm.api_keys)
        logger.info(f"LLM API Keys ({len(settings.llm.api_keys)}): {masked}")
    else:
        logger.info("LLM API Keys: Not set")
    logger.info(f"LLM Retries: {settings.llm.retries}")
    logger.info(
        f"Sampling: temperature={settings.llm.temperature} top_p={settings.llm.top_p} "
        f"frequency_penalty={settings.llm.frequency_penalty} "
        f"presence_penalty={settings.llm.presence_penalty} max_tokens={settings.llm.max_tokens}"
    )
    logger.info(f"\nTool Marker: {settings.tools.prefix_char}")
    logger.info(f"Enabled Tools: {', '.join(settings.tools.enabled) or 'None (plain chat)'}")
    logger.info(f"Max Tool Calls: {settings.tools.max_tool_calls}")
    logger.info(f"Call Delay: {settings.tools.call_delay}s")
    logger.info(f"Chain Format: {settings.tools.chain_format}")
    logger.info(f"\nServer: {settings.server.host}:{settings.server.port}")

    return 0


def cmd_tools(args, settings: Settings) -> int:
    """Print generated tool documentation."""
    logger = get_logger(__name__)

    registry = build_registry(settings)
    names = _split_names(args.tools) or registry.tool_names
    try:
        print(registry.get_tool_doc(names))
    except ToolError as e:
        logger.error(f"{e}. Available tools: {', '.join(registry.tool_names)}")
        return 1
    return 0


async def cmd_chat(args, settings: Settings) -> int:
    """Ask a single question through the configured backend."""
    logger = get_logger(__name__)

    backend = _load_backend(settings, args.tools)
    if backend is None:
        return 1

    messages = []
    if args.system:
        messages.append(ChatMessage(role="system", content=args.system))
    messages.append(ChatMessage(role="user", content=args.question))

    logger.info(f"Sending to {backend.model_name}...")
    try:
        answer = await backend.simply_chat(messages, seed=args.seed)
    except LLMError as e:
        print(f"\n{e}", file=sys.stderr)
        return 1

    print(answer)
    logger.info(f"API calls: {backend.api_usage} (failed: {backend.failed_api_calls})")
    return 0


def cmd_serve(args, settings: Settings) -> int:
    """Start the OpenAI-compatible HTTP server."""
    logger = get_logger(__name__)

    backend = _load_backend(settings, args.tools)
    if backend is None:
        return 1

    import uvicorn

    from toolrelay.server import create_app

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    mode = "tool calling" if isinstance(backend, ToolCallingLLM) else "plain chat"
    logger.info(f"Starting OpenAI chat server ({mode}) @{host}:{port}")
    # log_config=None: keep our logging setup instead of uvicorn's default
    uvicorn.run(create_app(backend), host=host, port=port, log_config=None)
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "tools":
        return cmd_tools(args, settings)
    elif args.command == "chat":
        return asyncio.run(cmd_chat(args, settings))
    elif args.command == "serve":
        return cmd_serve(args, settings)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
