"""Core package for gitwatch: watch a git repo and run a command on updates."""
__version__ = "0.1.0"

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True), override=False)
