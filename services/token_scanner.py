import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from time import monotonic
from typing import Any, Callable, Optional

import cv2
import numpy as np

from schedulers.scheduler import PollingScheduler, TimerHandle

logger = logging.getLogger(__name__)

# テスト時にモック差し替え可能にするためモジュールレベルで参照
video_capture_cls = cv2.VideoCapture
qr_detector_cls = cv2.QRCodeDetector

DEFAULT_INTERVAL_MS = 2000
MIN_INTERVAL_MS = 100
MAX_INTERVAL_MS = 60000

ScannerHandle = TimerHandle


class CameraSource(ABC):
    """カメラ映像の抽象インターフェース"""

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """1フレーム取得（データ未準備なら None）"""
        ...

    @abstractmethod
    def release(self) -> None:
        """デバイス解放"""
        ...


class OpenCVCamera(CameraSource):
    """OpenCVのVideoCaptureによるカメラ"""

    def __init__(self, index: int = 0):
        self._index = index
        self._capture = None

    def _get_capture(self):
        if self._capture is None:
            self._capture = video_capture_cls(self._index)
        return self._capture

    def read_frame(self) -> Optional[np.ndarray]:
        capture = self._get_capture()
        if not capture.isOpened():
            return None
        if not capture.grab():
            return None
        ok, frame = capture.retrieve()
        if not ok or frame is None or frame.size == 0:
            return None
        return frame

    def release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None


class QRTokenDecoder:
    """フレームからQRコードの文字列を読み取る（読めなければ None、例外は出さない）"""

    def __init__(self):
        self._detector = qr_detector_cls()

    def decode(self, frame: Any) -> Optional[str]:
        if frame is None:
            return None
        try:
            data, _points, _ = self._detector.detectAndDecode(frame)
        except cv2.error as e:
            logger.debug("QRデコード失敗（未検出として扱う）: %s", e)
            return None
        return data or None


class VisualTokenScanner:
    """カメラを一定間隔でサンプリングし、読み取ったトークンを購読者に渡す"""

    def __init__(
        self,
        camera: CameraSource,
        scheduler: PollingScheduler,
        decoder: QRTokenDecoder = None,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        repeat_cooldown_ms: int = 0,
    ):
        if not MIN_INTERVAL_MS <= interval_ms <= MAX_INTERVAL_MS:
            raise ValueError(
                f"スキャン間隔は{MIN_INTERVAL_MS}〜{MAX_INTERVAL_MS}msで指定してください: {interval_ms}"
            )
        self._camera = camera
        self._scheduler = scheduler
        self._decoder = decoder or QRTokenDecoder()
        self._interval_ms = interval_ms
        # 同じトークンが写り続けている間は再通知しない。最後に見えてからこの時間が空けば再度通知（0 で無効）
        self._repeat_cooldown = max(repeat_cooldown_ms, 0) / 1000
        self._last_seen_at: Optional[float] = None
        self._on_decoded: Optional[Callable[[str], Any]] = None
        self._handle: Optional[ScannerHandle] = None
        self.last_scanned: Optional[str] = None
        self.tick_count = 0

    @property
    def interval_ms(self) -> int:
        return self._interval_ms

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self, on_decoded: Callable[[str], Any]) -> ScannerHandle:
        """サンプリング開始（既に動いていれば張り直す）"""
        if self.running:
            self.stop()
        self._on_decoded = on_decoded
        self._handle = self._scheduler.add_interval(
            f"token_scan_{id(self)}", self.tick, self._interval_ms / 1000
        )
        logger.info("QRスキャンを開始しました（%dms間隔）", self._interval_ms)
        return self._handle

    def stop(self, handle: ScannerHandle = None) -> None:
        """サンプリング停止（複数回呼んでも安全）"""
        target = handle or self._handle
        if target is not None:
            target.cancel()
        if target is self._handle:
            self._handle = None

    async def tick(self) -> Optional[str]:
        """1回分のサンプリング"""
        self.tick_count += 1
        frame = await asyncio.to_thread(self._camera.read_frame)
        if frame is None:
            return None

        token = await asyncio.to_thread(self._decoder.decode, frame)
        if not token:
            return None

        now = monotonic()
        if (
            self._repeat_cooldown
            and token == self.last_scanned
            and self._last_seen_at is not None
            and now - self._last_seen_at < self._repeat_cooldown
        ):
            self._last_seen_at = now
            logger.debug("同一トークンの連続読み取りを無視しました: %s", token)
            return None

        self.last_scanned = token
        self._last_seen_at = now
        logger.debug("QRコードを読み取りました: %s", token)
        if self._on_decoded is not None:
            result = self._on_decoded(token)
            if inspect.isawaitable(result):
                await result
        return token

    def close(self) -> None:
        """停止してカメラを解放"""
        self.stop()
        self._camera.release()
