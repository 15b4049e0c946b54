"""
Wiring for a traffic-inspection host: one config store, one seen registry,
one engine and replayer, and the host's annotation sink.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from dupemark.config import ComparisonConfig, ConfigStore, Settings
from dupemark.dedup import ClassificationEngine, HistoryReplayer, SeenRegistry
from dupemark.protocols import AnnotationSink, ClassificationDecision, HistoryProvider, HttpRequest


class ConfigWatcher(FileSystemEventHandler):
    """Watches the settings file and re-applies its comparison section."""

    def __init__(self, highlighter: DuplicateHighlighter, path: Path) -> None:
        self.highlighter = highlighter
        self.path = path.resolve()
        self.logger = structlog.get_logger(self.__class__.__name__)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory or Path(str(event.src_path)).resolve() != self.path:
            return
        self.logger.info("Configuration file changed, reloading", path=str(self.path))
        self.highlighter.reload_config(self.path)


class DuplicateHighlighter:
    """
    Entry point a host integrates with.

    Live requests go through ``handle_request``; ``replay_all`` re-highlights a
    whole history; ``update_config`` and ``reset`` are the settings actions.
    """

    def __init__(self, sink: AnnotationSink, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.sink = sink
        self.registry = SeenRegistry(num_shards=self.settings.registry.num_shards)
        self.store = ConfigStore(self.settings.comparison, registry=self.registry)
        self.engine = ClassificationEngine(self.store, self.registry)
        self.replayer = HistoryReplayer(self.engine, sink)
        self.logger = structlog.get_logger(self.__class__.__name__)
        self._observer: Optional[Any] = None

    def handle_request(self, request_id: int | str, request: HttpRequest) -> ClassificationDecision:
        decision = self.engine.classify(request)
        self.sink.report(request_id, decision)
        return decision

    def replay_all(self, provider: HistoryProvider) -> int:
        return self.replayer.replay_all(provider)

    def update_config(self, **flags: bool) -> ComparisonConfig:
        return self.store.update(**flags)

    def reset(self) -> None:
        self.registry.clear(reason="manual")

    @property
    def config(self) -> ComparisonConfig:
        return self.store.snapshot()

    def reload_config(self, path: Path) -> bool:
        """
        Re-read ``path`` and apply its comparison section.

        Returns:
            True if the file was applied, False if it was invalid and ignored
        """
        try:
            reloaded = Settings.from_yaml(path)
        except (ValidationError, yaml.YAMLError, OSError) as e:
            self.logger.error("Ignoring invalid configuration file", path=str(path), error=str(e))
            return False
        self.store.replace(reloaded.comparison)
        return True

    def watch_config(self, path: Path) -> None:
        """Start reloading ``path`` whenever it changes on disk."""
        if self._observer is not None:
            return
        handler = ConfigWatcher(self, path)
        observer = Observer()
        observer.schedule(handler, str(path.resolve().parent), recursive=False)
        observer.start()
        self._observer = observer
        self.logger.info("Watching configuration file", path=str(path))

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
