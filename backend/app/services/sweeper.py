"""
后台自动出餐任务：定期把超过预计出餐时间的备餐订单置为 ready
"""
import logging
import threading

from app.core.config import Settings
from app.repositories.sql import SqlStore
from app.services.orders import OrderService

logger = logging.getLogger(__name__)


class ReadySweeper:
    """按固定间隔执行 OrderService.sweep_ready 的守护线程"""

    def __init__(self, session_factory, settings: Settings):
        self.session_factory = session_factory
        self.settings = settings
        self.interval = settings.ready_sweep_interval_seconds
        self._stop = threading.Event()
        self._thread = None

    def run_once(self) -> int:
        store = SqlStore(self.session_factory())
        try:
            return OrderService(store, self.settings).sweep_ready()
        finally:
            store.close()

    def _loop(self):
        while not self._stop.wait(self.interval):
            try:
                self.run_once()
            except Exception:
                # 单次失败不终止后台线程，下个周期继续
                logger.exception("auto-ready sweep failed")

    def start(self):
        if self.interval <= 0 or self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name="ready-sweeper", daemon=True)
        self._thread.start()
        logger.info("auto-ready sweeper started, interval %ss", self.interval)

    def stop(self):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
