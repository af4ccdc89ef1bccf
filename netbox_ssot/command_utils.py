"""Console logging of the netbox-ssot command."""

import pprint
import textwrap
from io import StringIO
from typing import Any, Optional

import colorama
import structlog

# Longer records and issue data are cut in the console output
MAX_VALUE_LINES = 50

LEVEL_COLORS = {
    "debug": colorama.Style.DIM,
    "warning": colorama.Fore.YELLOW,
    "error": colorama.Fore.RED,
    "critical": colorama.Fore.RED + colorama.Style.BRIGHT,
}


def _render_value(value: Any) -> str:
    if not isinstance(value, (dict, list, tuple)):
        return str(value)

    lines = pprint.pformat(value).splitlines()
    if len(lines) > MAX_VALUE_LINES:
        lines = lines[:MAX_VALUE_LINES] + ["..."]
    return "\n" + textwrap.indent("\n".join(lines), "    ")


class LogRenderer:  # pylint: disable=too-few-public-methods
    """Renders sync events to the console, one line per event followed by its context.

    Example:
        19:48:19 warning  Not overwriting `serial` of not owned entity, CMDB: `SN1`, source: `SN2`
          content_type: dcim.device
          issue_type: OwnershipConflict
          uid: 42
    """

    def __call__(
        self,
        logger: structlog.types.WrappedLogger,
        name: str,
        event_dict: structlog.types.EventDict,
    ) -> str:
        """Render the given event_dict to a string."""
        timestamp = event_dict.pop("timestamp", None)
        level = event_dict.pop("level", None)
        event = event_dict.pop("event", None)
        exception = event_dict.pop("exception", None)

        sio = StringIO()
        if timestamp is not None:
            sio.write(f"{colorama.Style.DIM}{timestamp}{colorama.Style.RESET_ALL} ")
        if level is not None:
            sio.write(f"{LEVEL_COLORS.get(level, '')}{level:<9}{colorama.Style.RESET_ALL}")
        sio.write(f"{colorama.Style.BRIGHT}{event}{colorama.Style.RESET_ALL}")

        for key, value in sorted(event_dict.items()):
            if value is None:
                continue
            sio.write(
                f"\n  {colorama.Fore.CYAN}{key}{colorama.Style.RESET_ALL}: "
                f"{colorama.Fore.MAGENTA}{_render_value(value)}{colorama.Style.RESET_ALL}"
            )

        if exception:
            sio.write("\n" + textwrap.indent(str(exception), "    "))

        return sio.getvalue()


def enable_logging(verbosity=0, color: Optional[bool] = None):
    """Set up structlog to log the sync progress, issues and errors.

    Args:
        verbosity (int): 0 logs warnings and errors, 1-2 adds progress, 3 and more adds debug messages.
        color (Optional[bool]): Force colors on or off, `None` lets colorama detect the terminal.
    """
    if color is None:
        colorama.init()
    else:
        colorama.init(strip=not color)

    level = 30 - 10 * min(2, (verbosity + 1) // 2)

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.processors.format_exc_info,
            LogRenderer(),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def initialize_logger(options):
    """Configure logging from the merged configuration and command line options.

    The `force_color` and `no_color` flags override the configured `color`.
    """
    color = options.get("color", None)
    if options.get("force_color"):
        color = True
    if options.get("no_color"):
        color = False

    enable_logging(verbosity=options["verbosity"], color=color)
    return structlog.get_logger("netbox-ssot")
