"""Build step: write ``static/api-config.js`` with the TMDB API key.

Reads TMDB_API_KEY from the environment (or .env) and generates the browser
configuration script. The generated file is git-ignored and must never be
committed.

Usage:
    python build_config.py
    flask --app app build-config
"""
from __future__ import annotations

import datetime
import json
import os
import sys
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

DEFAULT_OUTPUT_DIR = Path(__file__).parent.resolve() / "static"
CONFIG_FILENAME = "api-config.js"

RED = "\x1b[31m{}\x1b[0m"
GREEN = "\x1b[32m{}\x1b[0m"

CONFIG_TEMPLATE = """/**
 * API Configuration - Generated by build script
 * Generated on: {generated_on}
 * DO NOT EDIT OR COMMIT THIS FILE
 */
window.TMDB_API_KEY = {api_key};
console.log("API configuration loaded successfully");
"""


def build_api_config(api_key: str, output_dir: Union[str, Path] = DEFAULT_OUTPUT_DIR) -> Path:
    """Write the browser config script and return its path.

    Args:
        api_key: The TMDB API key to embed.
        output_dir: Directory to write into; created if missing.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / CONFIG_FILENAME
    target.write_text(
        CONFIG_TEMPLATE.format(
            generated_on=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            api_key=json.dumps(api_key),
        ),
        encoding="utf-8",
    )
    return target


def main(output_dir: Optional[Union[str, Path]] = None) -> int:
    """Run the build step. Returns the process exit status."""
    load_dotenv()
    api_key = os.getenv("TMDB_API_KEY")
    if not api_key:
        print(RED.format("Error: TMDB_API_KEY not found in .env file"), file=sys.stderr)
        print("Please create a .env file with your TMDB API key like this:", file=sys.stderr)
        print("TMDB_API_KEY=your_api_key_here", file=sys.stderr)
        print(
            "You can get an API key from https://www.themoviedb.org/settings/api",
            file=sys.stderr,
        )
        return 1

    target = build_api_config(api_key, output_dir or DEFAULT_OUTPUT_DIR)
    print(GREEN.format(f"{target.name} created with environment variables"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
