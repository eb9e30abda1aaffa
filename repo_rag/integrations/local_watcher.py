"""
Local File Watcher

Scans local repositories into the knowledge base and keeps them current
by watching for file changes with inotify. Bursts of events for the same
file are collapsed: a change is only processed once the file has been
quiet for ``stability_threshold`` seconds.
"""

import os
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from inotify_simple import INotify, flags

from repo_rag.config.repositories import LocalRepoConfig
from repo_rag.models.knowledge import FileInfo
from repo_rag.services.knowledge_extraction.knowledge_builder import (
    KnowledgeItemBuilder,
    generate_knowledge_id,
)
from repo_rag.services.rag_engine import RAGEngine

DEFAULT_EXCLUDES = (
    'node_modules',
    '.git',
    'dist',
    'build',
    'coverage',
    '.nyc_output',
)

WATCH_MASK = (
    flags.CREATE
    | flags.MODIFY
    | flags.CLOSE_WRITE
    | flags.DELETE
    | flags.MOVED_FROM
    | flags.MOVED_TO
)


class RepositoryNotFoundError(ValueError):
    """Raised when a local repository name is not configured"""


def should_exclude_path(path: str, exclude_paths: Optional[List[str]] = None) -> bool:
    """Check a repository-relative path against default and configured excludes
    
    Entries are substring matches; a trailing ``/**`` is dropped first.
    """
    for exclude in (*DEFAULT_EXCLUDES, *(exclude_paths or [])):
        if exclude.endswith('/**'):
            exclude = exclude[:-3]
        if exclude in path:
            return True
    return False


def map_event_action(mask: int) -> Optional[str]:
    if mask & (flags.CREATE | flags.MOVED_TO):
        return "added"
    if mask & (flags.MODIFY | flags.CLOSE_WRITE):
        return "modified"
    if mask & (flags.DELETE | flags.MOVED_FROM):
        return "removed"
    return None


@dataclass
class RepositoryWatch:
    """inotify state for one watched repository"""
    repo: LocalRepoConfig
    root: Path
    inotify: INotify
    directories: Dict[int, Path] = field(default_factory=dict)
    pending: Dict[str, Tuple[str, asyncio.TimerHandle]] = field(default_factory=dict)
    
    def add_directory(self, directory: Path) -> None:
        wd = self.inotify.add_watch(directory, WATCH_MASK)
        self.directories[wd] = directory


class LocalFileWatcher:
    """Indexes and watches repositories on the local filesystem"""
    
    def __init__(
        self,
        rag_engine: RAGEngine,
        builder: Optional[KnowledgeItemBuilder] = None,
        stability_threshold: float = 2.0
    ):
        """Initialize the watcher
        
        Args:
            rag_engine: Engine that stores extracted knowledge
            builder: Knowledge item builder
            stability_threshold: Seconds a file must stay unchanged before
                its latest event is processed
        """
        self.rag_engine = rag_engine
        self.builder = builder or KnowledgeItemBuilder()
        self.stability_threshold = stability_threshold
        self.repos: List[LocalRepoConfig] = []
        self.watchers: Dict[str, RepositoryWatch] = {}
        # Repository-relative paths currently stored, per repository
        self.indexed_files: Dict[str, Set[str]] = {}
        self._tasks: Set[asyncio.Task] = set()
        self.logger = logging.getLogger("repo_rag.integrations.local_watcher")
    
    def add_local_repositories(self, repos: List[LocalRepoConfig]) -> None:
        self.repos.extend(repos)
        self.logger.info(f"Added {len(repos)} local repositories to watch")
    
    def find_repository(self, repo_name: str) -> Optional[LocalRepoConfig]:
        for repo in self.repos:
            if repo.name == repo_name:
                return repo
        return None
    
    def get_all_files(self, repo: LocalRepoConfig) -> List[Path]:
        """List every non-excluded file under a repository root"""
        root = Path(repo.path).resolve()
        return self._walk_files(root, root, repo.exclude_paths)
    
    def _walk_files(self, root: Path, start: Path, exclude_paths: Optional[List[str]]) -> List[Path]:
        files = []
        
        for dirpath, dirnames, filenames in os.walk(start):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if not should_exclude_path((current / d).relative_to(root).as_posix(), exclude_paths)
            )
            for filename in sorted(filenames):
                file_path = current / filename
                if not should_exclude_path(file_path.relative_to(root).as_posix(), exclude_paths):
                    files.append(file_path)
        
        return files
    
    def _indexed(self, repo_name: str) -> Set[str]:
        return self.indexed_files.setdefault(repo_name, set())

    
    def _read_file_info(self, repo: LocalRepoConfig, file_path: Path, relative_path: str) -> FileInfo:
        with open(file_path, 'r', encoding='utf-8') as f:
            content = f.read()
        
        return FileInfo(
            repository=repo.name,
            file_path=relative_path,
            content=content,
            last_modified=datetime.fromtimestamp(file_path.stat().st_mtime, tz=timezone.utc)
        )
    
    async def perform_initial_scan(self) -> None:
        self.logger.info("Performing initial scan of local repositories...")
        
        for repo in self.repos:
            await self.scan_repository(repo)
        
        self.logger.info("Initial scan completed")
    
    async def scan_repository(self, repo: LocalRepoConfig) -> int:
        """Index every eligible file of a local repository
        
        Returns:
            Number of files added to the knowledge base
        """
        self.logger.info(f"Scanning {repo.name} at {repo.path}...")
        
        root = Path(repo.path).resolve()
        if not root.is_dir():
            self.logger.error(f"Cannot scan repository {repo.name}: {root} is not a directory")
            return 0
        
        processed_files = 0
        
        for file_path in self.get_all_files(repo):
            relative_path = file_path.relative_to(root).as_posix()
            
            if not self.builder.should_process_file(relative_path):
                continue
            
            try:
                knowledge = self.builder.build(self._read_file_info(repo, file_path, relative_path))
                if knowledge:
                    await self.rag_engine.add_knowledge(knowledge)
                    processed_files += 1
                    self._indexed(repo.name).add(relative_path)
            except Exception as e:
                self.logger.error(f"Error processing file {relative_path}: {str(e)}")
        
        self.logger.info(f"Scanned {repo.name} - {processed_files} files processed")
        return processed_files
    
    async def handle_file_event(self, action: str, repo: LocalRepoConfig, file_path: str) -> None:
        """Apply an added/modified/removed event for an absolute file path"""
        root = Path(repo.path).resolve()
        path = Path(file_path)
        try:
            relative_path = path.relative_to(root).as_posix()
        except ValueError:
            self.logger.warning(f"Ignoring event for {file_path} outside {root}")
            return
        
        if should_exclude_path(relative_path, repo.exclude_paths):
            return
        
        if not self.builder.should_process_file(relative_path):
            return
        
        self.logger.info(f"{action} file: {relative_path} in {repo.name}")
        
        try:
            if action == "removed":
                await self.rag_engine.remove_knowledge(generate_knowledge_id(repo.name, relative_path))
                self._indexed(repo.name).discard(relative_path)
                return
            
            knowledge = self.builder.build(self._read_file_info(repo, path, relative_path))
            if knowledge:
                if action == "modified":
                    await self.rag_engine.update_knowledge(knowledge)
                else:
                    await self.rag_engine.add_knowledge(knowledge)
                self._indexed(repo.name).add(relative_path)
        except Exception as e:
            self.logger.error(f"Error handling {action} event for {file_path}: {str(e)}")
    
    async def start_watching(self) -> None:
        self.logger.info("Starting local file watchers...")
        
        for repo in self.repos:
            await self.watch_repository(repo)
        
        self.logger.info("All local file watchers started")
    
    async def watch_repository(self, repo: LocalRepoConfig) -> bool:
        """Start an inotify watch over a repository tree
        
        Returns:
            True if the repository is now being watched
        """
        if repo.name in self.watchers:
            return True
        
        root = Path(repo.path).resolve()
        if not root.is_dir():
            self.logger.error(f"Cannot watch repository {repo.name} at {repo.path}: not a directory")
            return False
        
        watch = RepositoryWatch(repo=repo, root=root, inotify=INotify())
        self._add_directory_tree(watch, root)
        
        loop = asyncio.get_running_loop()
        loop.add_reader(watch.inotify.fileno(), self._read_events, watch)
        self.watchers[repo.name] = watch
        
        self.logger.info(
            f"Watching local repository: {repo.name} at {repo.path} "
            f"({len(watch.directories)} directories)"
        )
        return True
    
    def _add_directory_tree(self, watch: RepositoryWatch, directory: Path) -> None:
        for dirpath, dirnames, _ in os.walk(directory):
            current = Path(dirpath)
            dirnames[:] = [
                d for d in dirnames
                if not should_exclude_path(
                    (current / d).relative_to(watch.root).as_posix(), watch.repo.exclude_paths
                )
            ]
            try:
                watch.add_directory(current)
            except OSError as e:
                self.logger.warning(f"Cannot watch directory {current}: {str(e)}")
    
    def _read_events(self, watch: RepositoryWatch) -> None:
        for event in watch.inotify.read(timeout=0):
            if event.mask & flags.IGNORED:
                watch.directories.pop(event.wd, None)
                continue
            
            directory = watch.directories.get(event.wd)
            if directory is None or not event.name:
                continue
            
            path = directory / event.name
            
            if event.mask & flags.ISDIR:
                relative_dir = path.relative_to(watch.root).as_posix()
                if event.mask & (flags.CREATE | flags.MOVED_TO):
                    if not should_exclude_path(relative_dir, watch.repo.exclude_paths):
                        self._add_directory_tree(watch, path)
                        # Files already inside never raise their own events
                        for file_path in self._walk_files(watch.root, path, watch.repo.exclude_paths):
                            self._schedule_event(watch, "added", str(file_path))
                elif event.mask & flags.MOVED_FROM:
                    self._forget_directory(watch, path)
                continue
            
            action = map_event_action(event.mask)
            if action:
                self._schedule_event(watch, action, str(path))
    
    def _forget_directory(self, watch: RepositoryWatch, directory: Path) -> None:
        """Drop watches and stored knowledge for a directory moved out of the tree"""
        for wd, watched in list(watch.directories.items()):
            if watched == directory or directory in watched.parents:
                watch.directories.pop(wd)
                try:
                    watch.inotify.rm_watch(wd)
                except OSError as e:
                    self.logger.debug(f"Watch on {watched} already gone: {str(e)}")
        
        prefix = directory.relative_to(watch.root).as_posix() + "/"
        stale = {
            str(watch.root / relative_path)
            for relative_path in self._indexed(watch.repo.name)
            if relative_path.startswith(prefix)
        }
        stale.update(p for p in watch.pending if Path(p).is_relative_to(directory))
        
        self.logger.info(f"Directory {prefix} left {watch.repo.name}; removing {len(stale)} files")
        for file_path in sorted(stale):
            self._schedule_event(watch, "removed", file_path)

    
    def _schedule_event(self, watch: RepositoryWatch, action: str, file_path: str) -> None:
        """Debounce events per file; a file created then written stays 'added'"""
        previous = watch.pending.pop(file_path, None)
        if previous:
            previous_action, handle = previous
            handle.cancel()
            if previous_action == "added" and action == "modified":
                action = "added"
        
        loop = asyncio.get_running_loop()
        handle = loop.call_later(self.stability_threshold, self._dispatch_event, watch, file_path)
        watch.pending[file_path] = (action, handle)
    
    def _dispatch_event(self, watch: RepositoryWatch, file_path: str) -> None:
        action, _ = watch.pending.pop(file_path)
        task = asyncio.ensure_future(self.handle_file_event(action, watch.repo, file_path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
    
    async def stop_watching(self, repo_name: str) -> None:
        watch = self.watchers.pop(repo_name, None)
        if watch is None:
            return
        
        asyncio.get_running_loop().remove_reader(watch.inotify.fileno())
        for _, handle in watch.pending.values():
            handle.cancel()
        watch.pending.clear()
        watch.inotify.close()
        
        self.logger.info(f"Stopped watching {repo_name}")
    
    async def stop_all_watchers(self) -> None:
        self.logger.info("Stopping all file watchers...")
        
        for repo_name in list(self.watchers):
            await self.stop_watching(repo_name)
        
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        
        self.logger.info("All file watchers stopped")
    
    def get_watcher_status(self) -> List[Dict[str, Any]]:
        return [
            {
                "repo_name": repo.name,
                "is_watching": repo.name in self.watchers,
                "path": repo.path
            }
            for repo in self.repos
        ]
    
    async def rescan_repository(self, repo_name: str) -> int:
        """Re-index a configured repository by name
        
        Raises:
            RepositoryNotFoundError: If no repository has that name
        """
        repo = self.find_repository(repo_name)
        if repo is None:
            raise RepositoryNotFoundError(f"Repository {repo_name} not found")
        
        self.logger.info(f"Rescanning {repo_name}...")
        return await self.scan_repository(repo)
    
    def get_repository_stats(self, repo_name: str) -> Optional[Dict[str, Any]]:
        repo = self.find_repository(repo_name)
        if repo is None or not Path(repo.path).is_dir():
            return None
        
        root = Path(repo.path).resolve()
        files = self.get_all_files(repo)
        processable_files = [
            f for f in files
            if self.builder.should_process_file(f.relative_to(root).as_posix())
        ]
        
        return {
            "repo_name": repo_name,
            "path": repo.path,
            "total_files": len(files),
            "processable_files": len(processable_files),
            "is_watching": repo_name in self.watchers
        }
