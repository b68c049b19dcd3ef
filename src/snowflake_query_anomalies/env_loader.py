"""
Environment Early Loader

Loads a local .env file into os.environ before settings are parsed.
Variables already present in the environment are left untouched.
"""

import os
from pathlib import Path
from typing import Dict, Union


def load_env(env_path: Union[str, Path] = '.env') -> Dict[str, str]:
    """Load environment variables from a .env file and return what was set."""
    env_file = Path(env_path)
    loaded = {}
    if not env_file.exists():
        return loaded

    with open(env_file) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith('#') or '=' not in line:
                continue
            key, value = line.split('=', 1)
            key = key.strip()
            if key.startswith('export '):
                key = key[len('export '):].strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value
    return loaded
