import os

import yaml

# --- CONFIGURATION ---
BASE_URL = "https://piazza.com"
LOGIN_URL = f"{BASE_URL}/account/login"
API_ENDPOINT = f"{BASE_URL}/logic/api"
CLASS_URL = f"{BASE_URL}/class/"
# school_ext / term / course, e.g. https://piazza.com/ubc.ca/winterterm12016/cpsc416/resources
RESOURCE_URL_TEMPLATE = BASE_URL + "/{school_ext}/{term}/{course}/resources"
CONTENT_TYPE = "application/json; charset=UTF-8"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/91.0.4472.124 Safari/537.36"
)

# Fake URL scheme, "piazza://classID/contentID".
PIAZZA_SCHEME = "piazza"

# Inline script assignment that precedes the resource JSON on a class page.
RESOURCE_DATA_MARKER = "this.resource_data        = "

CONFIG_YAML = "piazza.yaml"
USER_ENV = "PIAZZAUSER"
PASS_ENV = "PIAZZAPASS"


def load_config(path=CONFIG_YAML):
    """Load the YAML config file. A missing file is an empty config."""
    if not os.path.exists(path):
        return {}
    with open(path, 'r', encoding='utf-8') as f:
        try:
            cfg = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"{path}: {e}") from e
    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ValueError(f"{path}: expected a mapping, got {type(cfg).__name__}")
    return cfg


def resolve_credentials(username=None, password=None, cfg=None):
    """Pick credentials from flags, then the environment, then the config file."""
    cfg = cfg or {}
    username = username or os.environ.get(USER_ENV) or cfg.get('username') or ""
    password = password or os.environ.get(PASS_ENV) or cfg.get('password') or ""
    return username, password
