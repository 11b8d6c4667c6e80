"""Timed refresh of the watchlist.

All engine state lives on the foreground thread. Background refreshes run in
RefreshWorker threads that only fetch; their batch is picked up by poll()
and rendered (or discarded) here.
"""

import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from quotewatch.config import Config
from quotewatch.constants import REAPER_INTERVAL
from quotewatch.formatting import ColorPolicy, DisplayRow, format_record
from quotewatch.provider import Quote, QuoteClient

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


def fetch_batch(client: QuoteClient, symbols: List[str],
                should_stop: Callable[[], bool] = lambda: False) -> Optional[List[Record]]:
    """Fetch each symbol in turn. Failed symbols are skipped; None if stopped early."""
    records = []
    for symbol in symbols:
        if should_stop():
            return None
        outcome = client.fetch(symbol)
        if isinstance(outcome, Quote):
            records.append(outcome.record)
    return records


class PeriodicTimer:
    """Repeating timer driven by poll() from the foreground loop."""

    def __init__(self, interval: float, callback: Callable[[], Any], now: float):
        self.interval = interval
        self.callback = callback
        self.next_due = now + interval
        self.active = True

    def poll(self, now: float) -> bool:
        if not self.active or now < self.next_due:
            return False
        self.next_due = now + self.interval
        self.callback()
        return True

    def cancel(self):
        self.active = False


class RefreshWorker:
    """One background refresh of a watchlist snapshot."""

    def __init__(self, job_id: int, symbols: List[str], dispatch_time: float,
                 client: QuoteClient, deadline: float, clock: Callable[[], float] = time.time):
        self.job_id = job_id
        self.symbols = list(symbols)
        self.dispatch_time = dispatch_time
        self.client = client
        self.deadline = deadline
        self._clock = clock
        self.started_at = clock()
        self.finished_at: Optional[float] = None
        self.result: Optional[List[Record]] = None
        self._done = threading.Event()
        self._killed = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self.run, name=f"refresh-{self.job_id}", daemon=True)
        self._thread.start()

    def run(self):
        try:
            records = fetch_batch(self.client, self.symbols, self._should_stop)
        finally:
            self.client.close()
        if records is None or self.killed:
            return
        self.result = records
        self.finished_at = self._clock()
        self._done.set()

    def _should_stop(self) -> bool:
        if self.killed:
            return True
        if self.expired():
            logger.warning("Refresh %s ran past %ss, giving up", self.job_id, self.deadline)
            self._killed.set()
            return True
        return False

    def expired(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - self.started_at > self.deadline

    def kill(self):
        self._killed.set()
        self.result = None

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def killed(self) -> bool:
        return self._killed.is_set()

    @property
    def finished(self) -> bool:
        return self._done.is_set() and not self.killed

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


class RefreshEngine:
    """Owns the refresh timers, in-flight workers and the last rendered batch."""

    def __init__(self, watchlist, view, client: Optional[QuoteClient] = None,
                 config: Optional[Config] = None, clock: Callable[[], float] = time.time):
        self.watchlist = watchlist
        self.view = view
        self.client = client or QuoteClient()
        self.config = config or Config()
        self.policy = ColorPolicy(up_is_red=self.config.up_red_down_green)
        self._clock = clock
        self._job_ids = itertools.count(1)

        self.latest_data: List[DisplayRow] = []
        self.data_timestamp = 0.0
        self.fetch_timer: Optional[PeriodicTimer] = None
        self.reaper_timer: Optional[PeriodicTimer] = None
        self.workers: List[RefreshWorker] = []

    @property
    def running(self) -> bool:
        return self.fetch_timer is not None and self.fetch_timer.active

    # -- Lifecycle ---------------------------------------------------------

    def start(self):
        """Begin (or restart) auto-refresh and fetch once right away."""
        self._cancel_timers()
        now = self._clock()
        self.fetch_timer = PeriodicTimer(self.config.refresh_interval,
                                         lambda: self.refresh(async_=True), now)
        self.reaper_timer = PeriodicTimer(REAPER_INTERVAL, self.reap, now)
        self.view.set_refreshing(True)
        logger.info("Auto-refresh on, every %ss", self.config.refresh_interval)
        self.refresh(async_=True)

    def stop(self):
        """Cancel auto-refresh; the last batch stays on screen."""
        self._cancel_timers()
        self.view.repaint(self.latest_data, refreshing=False, stamp=False)
        logger.info("Auto-refresh off")

    def close(self):
        """View is going away: stop timers and kill every worker."""
        self._cancel_timers()
        for worker in self.workers:
            worker.kill()
        self.workers = []

    def _cancel_timers(self):
        for timer in (self.fetch_timer, self.reaper_timer):
            if timer is not None:
                timer.cancel()
        self.fetch_timer = None
        self.reaper_timer = None

    # -- Refresh -----------------------------------------------------------

    def refresh(self, async_: bool = False) -> Optional[RefreshWorker]:
        symbols = self.watchlist.snapshot()
        if not symbols:
            logger.info("Watchlist is empty")
            return None
        dispatch_time = self._clock()

        if not async_:
            records = fetch_batch(self.client, symbols)
            self.handle_batch(dispatch_time, records)
            return None

        worker = RefreshWorker(next(self._job_ids), symbols, dispatch_time, self.client.copy(),
                               deadline=self.config.worker_deadline, clock=self._clock)
        self.workers.append(worker)
        worker.start()
        return worker

    def handle_batch(self, dispatch_time: float, records: List[Record]) -> bool:
        """Render a fetched batch unless something newer is already on screen."""
        if dispatch_time < self.data_timestamp:
            logger.info("Outdated data received")
            return False

        rows = []
        for record in records:
            row = format_record(record, self.policy)
            if row is None:
                continue
            # symbols removed while the batch was in flight stay removed
            if not self.watchlist.contains(row.symbol):
                continue
            rows.append(row)
        if not rows:
            return False

        self.data_timestamp = dispatch_time
        self.latest_data = rows
        self.view.repaint(rows, refreshing=self.running)
        return True

    def poll(self):
        """Foreground pump: fire due timers, then collect finished workers."""
        now = self._clock()
        for timer in (self.fetch_timer, self.reaper_timer):
            if timer is not None:
                timer.poll(now)
        self.collect()

    def collect(self) -> int:
        """Hand finished worker batches to handle_batch in completion order."""
        done = [w for w in self.workers if w.finished]
        done.sort(key=lambda w: w.finished_at)
        rendered = 0
        for worker in done:
            self.workers.remove(worker)
            if not self.running:
                logger.info("Auto-refresh is off, dropping refresh %s", worker.job_id)
                continue
            if self.handle_batch(worker.dispatch_time, worker.result):
                rendered += 1
        return rendered

    def reap(self) -> int:
        """Kill workers past their deadline and forget ones that gave up."""
        now = self._clock()
        reaped = 0
        for worker in list(self.workers):
            if worker.finished:
                continue
            if worker.expired(now):
                worker.kill()
                logger.warning("Killed refresh %s after %ss", worker.job_id, worker.deadline)
            elif not worker.alive:
                logger.debug("Refresh %s exited without a result", worker.job_id)
            else:
                continue
            self.workers.remove(worker)
            reaped += 1
        return reaped

    # -- Row bookkeeping for watchlist commands ----------------------------

    def append_row(self, row: DisplayRow):
        self.view.append_row(row)
        self.latest_data.append(row)
        # an older in-flight batch would not know about this row
        self.data_timestamp = max(self.data_timestamp, self._clock())

    def remove_row(self, symbol: str):
        self.view.remove_row_by_symbol(symbol)
        key = symbol.lower()
        for i, row in enumerate(self.latest_data):
            if row.symbol.lower() == key:
                del self.latest_data[i]
                break
