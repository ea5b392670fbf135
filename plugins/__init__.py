"""
Observer plugins.

Plugins are configured by name (LIFELOG_PLUGINS) rather than discovered
from disk. Each one keeps its own JSON data under the data directory.
"""

import logging
from pathlib import Path
from typing import Optional

from lifelog.errors import ConfigurationError
from lifelog.hooks import Observer

from .exercise import ExerciseObserver
from .wearable import WearableObserver

logger = logging.getLogger(__name__)

AVAILABLE = {
    ExerciseObserver.name: ExerciseObserver,
    WearableObserver.name: WearableObserver,
}


def load_observers(names: list[str], data_dir: Optional[Path] = None) -> list[Observer]:
    """Instantiate the named plugins, in order.

    Raises:
        ConfigurationError: a name with no matching plugin.
    """
    observers = []
    for name in names:
        factory = AVAILABLE.get(name)
        if factory is None:
            raise ConfigurationError(
                f"Unknown plugin '{name}'. Available: {', '.join(sorted(AVAILABLE))}"
            )
        observers.append(factory(data_dir))
    logger.info(f"[Plugins] Configured: {', '.join(names) if names else 'none'}")
    return observers
