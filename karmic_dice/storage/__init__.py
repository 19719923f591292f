"""File-based JSON storage for settings and per-user karmic state.

Data layout:
  data/
    config.json          Karmic dice settings (merged over defaults at read time)
    state/
      <slug>-<hash>.json Per-user id, history + streak per die ({"user_id", "dice"})

Slug rules: user id → Unicode normalize → strip non-ASCII → lowercase →
replace non-alnum runs with hyphen → strip leading/trailing hyphens.

Config: get_config() returns defaults merged with stored values.
update_config() applies partial updates: affinity_map is merged per actor
("default" removes an override), scalars overwritten. get_settings()
validates the merged config into KarmicSettings.

State: save_state() writes immediately; schedule_save() debounces writes
while an event loop is running; flush_state() forces pending writes.
"""

# Re-export all public symbols so `from karmic_dice import storage` keeps working.

from .core import (  # noqa: F401
    data_dir,
    init_storage,
    slugify,
    state_dir,
)

from .config import (  # noqa: F401
    get_config,
    get_settings,
    update_config,
)

from .state import (  # noqa: F401
    StateSaver,
    delete_state,
    flush_state,
    list_state_users,
    load_state,
    pending_saves,
    save_state,
    schedule_save,
    state_path,
)
