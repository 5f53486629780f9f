from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional
from jinja2 import Template


# ─── Config Schema ─────────────────────────────────────────────────
class UIConfig(BaseModel):
    ampm: bool = False
    # events due within this fraction of their period show in standard view
    look_ahead: float = Field(1.0 / 12.0, ge=0.0, le=1.0)
    view: str = Field("extended", pattern="^(standard|extended)$")


class TrackerConfig(BaseModel):
    last_open: Optional[str] = None


class OilConfig(BaseModel):
    title: str = "Oil Configuration"
    ui: UIConfig = UIConfig()
    tracker: TrackerConfig = TrackerConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[ui]
# ampm: bool = true | false
ampm = {{ ui.ampm | lower }}

# look_ahead: float between 0.0 and 1.0
# In the standard view, an event that is not yet triggered is
# listed when the time remaining until it is due is less than
# this fraction of its period, e.g. 0.0833 of a day is 2 hours.
look_ahead = {{ ui.look_ahead }}

# view: str = 'standard' | 'extended'
# standard: triggered events and those about to trigger
# extended: every event with its schedule and status
view = "{{ ui.view }}"

[tracker]
# The events file opened by default. Updated whenever another
# file is opened with --file.
{% if tracker.last_open %}
last_open = "{{ tracker.last_open }}"
{% else %}
# last_open = "~/.config/oil/events.json"
{% endif %}
"""

# ─── Save Config with Comments ───────────────────────────────


def render_config(config: OilConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: OilConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")
    print(f"✅ Config with comments written to: {path}")


# ─── Main Environment Class ───────────────────────────────


class OilEnvironment:
    def __init__(self):
        self._home = self._resolve_home()
        self._config: Optional[OilConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def events_path(self) -> Path:
        """The tracker file in use: the last opened one, else events.json in home."""
        last = self.config.tracker.last_open
        if last:
            return Path(last).expanduser()
        return self.home / "events.json"

    def ensure(self, init_config: bool = True):
        self.home.mkdir(parents=True, exist_ok=True)

        if init_config and not self.config_path.exists():
            save_config_from_template(OilConfig(), self.config_path)

    def load_config(self) -> OilConfig:
        # Step 1: Create the file if it doesn't exist
        if not os.path.exists(self.config_path):
            config = OilConfig()
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(render_config(config))
            print(f"✅ Created new config file at {self.config_path}")
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = OilConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            print(f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.")
            config = OilConfig()

        # Step 3: Always regenerate the canonical version
        rendered = render_config(config)

        with open(self.config_path, "r", encoding="utf-8") as f:
            current_text = f.read()

        if rendered != current_text:
            with open(self.config_path, "w", encoding="utf-8") as f:
                f.write(rendered)
            print(f"✅ Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> OilConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    def remember_last_open(self, path: Path | str) -> None:
        """Store the tracker file path so that it is opened by default next time."""
        resolved = str(Path(path).expanduser().resolve())
        config = self.config
        if config.tracker.last_open == resolved:
            return
        config.tracker.last_open = resolved
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(render_config(config), encoding="utf-8")

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists() and (cwd / "events.json").exists():
            return cwd

        env_home = os.getenv("OIL_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "oil"
        else:
            return Path.home() / ".config" / "oil"
