# schedulers/scheduler.py
import logging
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class TimerHandle:
    """定期ジョブの解除用ハンドル（cancel は何度呼んでもよい）"""

    def __init__(self, scheduler: AsyncIOScheduler, job_id: str):
        self._scheduler = scheduler
        self.job_id = job_id
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        try:
            self._scheduler.remove_job(self.job_id)
        except JobLookupError:
            pass


class PollingScheduler:
    """APSchedulerによる定期実行管理（スキャン・台帳更新のタイマー）"""

    def __init__(self, scheduler: AsyncIOScheduler = None):
        self._scheduler = scheduler or AsyncIOScheduler()

    def add_interval(self, job_id: str, job_func: Callable, seconds: float) -> TimerHandle:
        """seconds 間隔でジョブを登録する（同じIDは置き換え、前回実行中なら今回はスキップ）"""
        self._scheduler.add_job(
            job_func,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.debug("定期ジョブを登録しました: %s (%.1f秒間隔)", job_id, seconds)
        return TimerHandle(self._scheduler, job_id)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self):
        """スケジューラ開始（イベントループ上で呼ぶこと）"""
        if not self._scheduler.running:
            self._scheduler.start()

    def stop(self):
        """スケジューラ停止"""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
