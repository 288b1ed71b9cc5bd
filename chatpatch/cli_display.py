import logging
import os
from datetime import datetime

_RESET = "\033[0m"
_COLORS = {
    "green": "\033[32m",
    "red": "\033[31m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "bold": "\033[1m",
    "dim": "\033[2m",
}


def setup_logger(log_dir: str = ".chatpatch/logs",
                 verbose: bool = False) -> logging.Logger:
    """Creates the package file logger. All verbose output goes here.

    With *verbose*, INFO and above are echoed to stderr as well.
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"chatpatch_{timestamp}.log")

    logger = logging.getLogger("chatpatch")
    logger.setLevel(logging.DEBUG)

    # File handler captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    if verbose:
        sh = logging.StreamHandler()
        sh.setLevel(logging.INFO)
        sh.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        logger.addHandler(sh)

    return logger


def colorize(text: str, color: str) -> str:
    return f"{_COLORS.get(color, '')}{text}{_RESET}"


def print_banner(message: str) -> None:
    """Non-fatal inline notice (e.g. provider unreachable)."""
    print(f"\n  {colorize('!', 'yellow')} {message}\n")


def print_header(title: str) -> None:
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)
