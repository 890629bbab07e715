"""Best-effort browser launching for the login step

Tries a private/incognito window first, in a fixed order of known browsers
for the current platform, then falls back to the default browser. A failed
attempt only moves on to the next candidate.
"""
import logging
import shutil
import subprocess
import sys
import webbrowser
from typing import List, Optional

logger = logging.getLogger(__name__)

# A candidate that exits non-zero within this window is treated as missing
LAUNCH_PROBE_SECONDS = 1.0


def private_window_commands(url: str, platform: Optional[str] = None) -> List[List[str]]:
    """Ordered launch commands for a private window on ``platform``"""
    platform = platform or sys.platform

    if platform == "darwin":
        return [
            ["open", "-na", "Google Chrome", "--args", "--incognito", url],
            ["open", "-na", "Brave Browser", "--args", "--incognito", url],
            ["open", "-na", "Microsoft Edge", "--args", "--inprivate", url],
            ["open", "-na", "Firefox", "--args", "-private-window", url],
        ]

    if platform == "win32":
        return [
            ["cmd", "/c", "start", "", "msedge", "--inprivate", url],
            ["cmd", "/c", "start", "", "chrome", "--incognito", url],
            ["cmd", "/c", "start", "", "firefox", "-private-window", url],
        ]

    return [
        ["google-chrome", "--incognito", url],
        ["chromium", "--incognito", url],
        ["chromium-browser", "--incognito", url],
        ["brave-browser", "--incognito", url],
        ["microsoft-edge", "--inprivate", url],
        ["firefox", "-private-window", url],
    ]


def _try_launch(command: List[str]) -> bool:
    if shutil.which(command[0]) is None:
        return False

    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.debug(f"Could not start {command[0]}: {e}")
        return False

    try:
        return process.wait(timeout=LAUNCH_PROBE_SECONDS) == 0
    except subprocess.TimeoutExpired:
        # Still running: the browser window is up
        return True


def open_private_window(url: str) -> bool:
    """Open ``url`` in a private window if possible, else a normal one

    Returns:
        True if some browser was launched
    """
    for command in private_window_commands(url):
        if _try_launch(command):
            logger.debug(f"Opened login page with {command[0]}")
            return True

    try:
        if webbrowser.open(url):
            logger.debug("Opened login page in the default browser")
            return True
    except webbrowser.Error as e:
        logger.warning(f"Default browser could not be opened: {e}")

    logger.warning("No browser could be launched; open the login URL manually")
    return False
