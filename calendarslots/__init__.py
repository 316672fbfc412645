"""calendarslots - recurrence expansion for calendar events.

Expands day and timed events with a recurrence rule into concrete slots and
hands them to a slot store. Top-level imports are kept light; the public API is
re-exported lazily from the submodules.
"""

__version__ = "0.1.0"

from typing import Any, Optional

_LAZY_EXPORTS = {
    "DayEvent": "calendarslots.calendar.recurrence_models",
    "TimeEvent": "calendarslots.calendar.recurrence_models",
    "parse_event": "calendarslots.calendar.recurrence_models",
    "parse_recurrence_rule": "calendarslots.calendar.recurrence_models",
    "OccurrenceSequence": "calendarslots.calendar.occurrence_generator",
    "generate_occurrences": "calendarslots.calendar.occurrence_generator",
    "ExpansionOrchestrator": "calendarslots.domain.expansion_orchestrator",
    "InMemorySlotStore": "calendarslots.domain.slot_store",
    "JsonSlotStore": "calendarslots.domain.slot_store",
}


def __getattr__(name: str) -> Any:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    import importlib

    return getattr(importlib.import_module(module_name), name)


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorized console handler so early CLI messages are visible.
    Honors CALENDARSLOTS_DEBUG (truthy values: "1", "true", "yes", "on"), which
    forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDARSLOTS_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message, with only the level colorized
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug("Logging initialized at level %s", logging.getLevelName(level))


def run_expand(args: Optional[object] = None) -> list[dict[str, Any]]:
    """Expand the event document named by ``args.event_file``.

    Loads .env defaults and environment configuration, expands the event and,
    when a store path is configured (``--store`` or CALENDARSLOTS_STORE_PATH),
    regenerates the event's slots in a JsonSlotStore.

    Args:
        args: Namespace with ``event_file`` and optional ``store`` and ``local``

    Returns:
        Slots as JSON-ready dicts, in occurrence order
    """
    import json
    import logging
    import os
    from pathlib import Path

    from calendarslots.calendar.recurrence_models import parse_event
    from calendarslots.core.config_manager import ConfigManager
    from calendarslots.domain.expansion_orchestrator import ExpansionOrchestrator
    from calendarslots.domain.slot_store import InMemorySlotStore, JsonSlotStore
    from calendarslots.lite_logging import configure_lite_logging

    cfg = ConfigManager().load_full_config()
    _init_logging(cfg.get("log_level") or os.environ.get("CALENDARSLOTS_LOG_LEVEL"))
    configure_lite_logging(debug_mode=bool(cfg.get("debug", False)))
    logger = logging.getLogger(__name__)

    event_file = Path(getattr(args, "event_file"))
    with event_file.open("r", encoding="utf-8") as fh:
        event = parse_event(json.load(fh))

    store_path = getattr(args, "store", None) or cfg.get("store_path")
    store = JsonSlotStore(store_path) if store_path else InMemorySlotStore()
    orchestrator = ExpansionOrchestrator(store, cfg)

    slots = orchestrator.regenerate_slots(event)
    if store_path:
        logger.info("Stored %d slots for event %s in %s", len(slots), event.id, store_path)

    if getattr(args, "local", False):
        rendered = orchestrator.find_slots_for_event(event.id)
        return [slot.model_dump(mode="json") for slot in rendered]
    return [slot.model_dump(mode="json") for slot in slots]
