import argparse
import queue
import sys
import threading
import time

from rich.console import Console
from rich.live import Live

from quotewatch.config import parse_config, parse_watchlist, save_watchlist
from quotewatch.constants import WATCHLIST_PATH
from quotewatch.engine import RefreshEngine
from quotewatch.logger import StatusLogHandler, setup_logger
from quotewatch.provider import QuoteClient
from quotewatch.state import MonitorState
from quotewatch.ui import QuoteView, build_layout, key_listener
from quotewatch.watchlist import Watchlist, add_symbol, remove_selected

ENTER = ("\r", "\n")
ESCAPE = "\x1b"
BACKSPACE = ("\x7f", "\b")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="quotewatch", description="Terminal stock quote monitor")
    parser.add_argument("--config", default="", help="path to config.ini")
    parser.add_argument("--watchlist", default="", help="path to watchlist.txt")
    parser.add_argument("--once", action="store_true", help="print one snapshot and exit")
    return parser.parse_args(argv)


def _handle_prompt_key(ch: str, engine: RefreshEngine, state: MonitorState):
    if ch in ENTER:
        symbol, state.prompt = state.prompt, None
        add_symbol(engine, symbol)
    elif ch == ESCAPE:
        state.prompt = None
    elif ch in BACKSPACE:
        state.prompt = state.prompt[:-1]
    elif ch.isprintable():
        state.prompt += ch


def handle_key(ch: str, engine: RefreshEngine, state: MonitorState):
    """Apply one keypress. Runs on the foreground thread."""
    if state.prompting:
        _handle_prompt_key(ch, engine, state)
    elif ch in ("q", "Q"):
        state.quit_flag = True
    elif ch == "p":
        engine.view.move_cursor(-1)
    elif ch == "n":
        engine.view.move_cursor(1)
    elif ch == "g":
        engine.start()
    elif ch == "s":
        engine.stop()
    elif ch == "a":
        state.prompt = ""
    elif ch == "d":
        remove_selected(engine)


def _drain_keys(engine: RefreshEngine, state: MonitorState):
    while not state.quit_flag:
        try:
            ch = state.keys.get_nowait()
        except queue.Empty:
            return
        handle_key(ch, engine, state)


def main(argv=None):
    args = parse_args(argv)
    logger = setup_logger("quotewatch")
    config = parse_config(args.config)

    status_handler = StatusLogHandler(enabled=config.enable_log)
    logger.addHandler(status_handler)

    watchlist_path = args.watchlist or WATCHLIST_PATH
    watchlist = Watchlist(parse_watchlist(watchlist_path),
                          on_change=lambda symbols: save_watchlist(symbols, watchlist_path))

    view = QuoteView()
    engine = RefreshEngine(watchlist, view, QuoteClient(), config)
    console = Console()

    if args.once:
        engine.refresh(async_=False)
        console.print(view.render())
        return

    logger.info("Watching %d symbols, refresh every %ss", len(watchlist), config.refresh_interval)

    # Save original terminal settings before key listener changes them
    _original_termios = None
    try:
        import termios as _termios
        _original_termios = _termios.tcgetattr(sys.stdin.fileno())
    except Exception:
        pass

    state = MonitorState()
    listener = threading.Thread(target=key_listener, args=(state,), daemon=True)
    listener.start()

    engine.start()

    try:
        with Live(build_layout(view, state), console=console, screen=True, refresh_per_second=4) as live:
            while not state.quit_flag:
                _drain_keys(engine, state)
                engine.poll()
                status_handler.publish(view)
                live.update(build_layout(view, state))
                time.sleep(0.2)

    except KeyboardInterrupt:
        pass
    finally:
        state.quit_flag = True
        engine.close()
        save_watchlist(watchlist.symbols, watchlist_path)
        logger.removeHandler(status_handler)
        # Restore original terminal settings
        if _original_termios:
            try:
                import termios as _termios
                _termios.tcsetattr(sys.stdin.fileno(), _termios.TCSADRAIN, _original_termios)
            except Exception:
                pass
        console.clear()
        print("[quotewatch] Goodbye.")


if __name__ == "__main__":
    main()
