#!/usr/bin/env python3
"""
Repository RAG Server

Indexes GitHub and local repositories into a Qdrant knowledge base and
answers questions about them.

Usage:
    python rag_server.py start
    python rag_server.py ask "How is authentication handled?"
    python rag_server.py search "webhook signature"
    python rag_server.py sync local
    python rag_server.py stats
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path

from repo_rag.config.settings import RAGServerConfig
from repo_rag.core.application import RAGApplication


async def run_server(app: RAGApplication) -> None:
    """Start the system and block until SIGINT or SIGTERM"""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await app.start_system()
    try:
        await stop_event.wait()
        logging.info("Received shutdown signal")
    finally:
        await app.shutdown()


def warn_if_ephemeral_store(config: RAGServerConfig, command: str) -> bool:
    """Return False (after warning) when a one-off command has no persistent Qdrant"""
    if command == 'start' or config.qdrant_url:
        return True
    logging.warning(
        f"QDRANT_URL is not set: '{command}' runs against an empty in-memory store "
        f"and anything it indexes is lost on exit. Set QDRANT_URL or pass --qdrant-url."
    )
    return False


async def run_command(app: RAGApplication, args: argparse.Namespace) -> int:
    if args.command == "ask":
        answer = await app.ask_question(args.question, args.context)
        print(answer)

    elif args.command == "search":
        results = await app.search_knowledge(args.query, args.limit)
        if not results:
            print("No results found.")
        for i, result in enumerate(results, 1):
            print(f"{i}. {result.metadata.get('title', 'Untitled')} (score: {result.score:.3f})")
            print(f"   {result.metadata.get('repository', '?')}: {result.metadata.get('file_path', '?')}")
            print(f"   {result.content[:200]}")
            print()

    elif args.command == "sync":
        await app.sync(args.target)
        print(f"Sync completed ({args.target or 'all sources'})")

    elif args.command == "stats":
        stats = await app.get_system_stats()
        print(json.dumps(stats, indent=2, default=str))

    return 0


async def main() -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='RAG server for GitHub and local repositories')

    # AI service options
    service_group = parser.add_argument_group('AI Service Options')
    service_group.add_argument('--service-type', choices=['gemini', 'claude', 'mock'],
                               help='Text generation service (can also set AI_SERVICE_TYPE in .env)')
    service_group.add_argument('--embedding-provider', choices=['gemini', 'openai', 'ollama', 'mock'],
                               help='Embedding provider (can also set EMBEDDING_PROVIDER in .env)')
    service_group.add_argument('--mock', action='store_true',
                               help='Use mock generation and embeddings (for testing)')

    # Storage and sources
    source_group = parser.add_argument_group('Source Options')
    source_group.add_argument('--repos-config', help='Path to repositories JSON (can also set REPOS_CONFIG in .env)')
    source_group.add_argument('--qdrant-url', help='Qdrant server URL (in-memory store if unset)')
    source_group.add_argument('--port', type=int, help='Webhook server port (can also set PORT in .env)')

    # Other options
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    parser.add_argument('--verbose', '-v', action='store_true', help='Shortcut for --log-level DEBUG')

    subparsers = parser.add_subparsers(dest='command')
    subparsers.add_parser('start', help='Run the webhook server and watchers')

    ask_parser = subparsers.add_parser('ask', help='Ask a question about the indexed code')
    ask_parser.add_argument('question')
    ask_parser.add_argument('--context', help='Additional context for the answer')

    search_parser = subparsers.add_parser('search', help='Search the knowledge base')
    search_parser.add_argument('query')
    search_parser.add_argument('--limit', type=int, default=10)

    sync_parser = subparsers.add_parser('sync', help='Run a one-off sync')
    sync_parser.add_argument('target', nargs='?', choices=['github', 'local'])

    subparsers.add_parser('stats', help='Show knowledge base statistics')

    args = parser.parse_args()
    command = args.command or 'start'
    args.command = command

    config = RAGServerConfig.from_args(vars(args))

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )

    warn_if_ephemeral_store(config, command)

    app = RAGApplication(config)
    try:
        await app.initialize()
    except ValueError as e:
        logging.error(f"Failed to initialize: {e}")
        return 1

    if command == 'start':
        await run_server(app)
        return 0

    try:
        return await run_command(app, args)
    finally:
        await app.shutdown()


if __name__ == "__main__":
    try:
        env_file = Path(__file__).resolve().parent / '.env'
        if env_file.exists():
            print(f"Using configuration from .env file: {env_file}", file=sys.stderr)
        else:
            print("No .env file found. Using environment variables or defaults.", file=sys.stderr)

        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logging.info("Server stopped by user")
    except Exception as e:
        logging.error(f"Unhandled exception: {e}", exc_info=True)
        sys.exit(1)
