"""Camera capture on a dedicated producer thread.

The worker reads frames, runs detection and skeleton building, and hands
each FrameResult to the consumer through a one-slot queue. When the
consumer has not yet taken the previous result the new frame is dropped
rather than queued, so at most one frame is ever in flight and the
consumer must tolerate skipped frames.

Usage:
    worker = CaptureWorker(processor, camera_index=0)
    worker.start()
    while running:
        item = worker.poll(timeout=0.1)   # raises DetectionFailure if detection died
        if item is not None:
            frame_bgr, result = item
            ...
    worker.stop()
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, Optional

import numpy as np

from handbody.detector import DetectionFailure
from handbody.pipeline import FrameProcessor, FrameResult

try:
    import cv2
except ImportError:
    cv2 = None

logger = logging.getLogger("handbody.capture")

CapturedFrame = tuple[np.ndarray, FrameResult]


class FrameHandoff:
    """Single-slot handoff between one producer and one consumer."""

    def __init__(self):
        self._slot: queue.Queue = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self.dropped = 0
        self.delivered = 0

    @property
    def busy(self) -> bool:
        return self._slot.full()

    def offer(self, item) -> bool:
        """Place `item` if the slot is free. Returns False if it was dropped."""
        try:
            self._slot.put_nowait(item)
        except queue.Full:
            self.drop()
            return False
        with self._lock:
            self.delivered += 1
        return True

    def drop(self):
        with self._lock:
            self.dropped += 1

    def take(self, timeout: Optional[float] = None):
        """Take the pending item, or None if nothing arrives within `timeout`."""
        try:
            return self._slot.get(timeout=timeout)
        except queue.Empty:
            return None


class CaptureWorker:
    """Producer thread: camera → FrameProcessor → FrameHandoff."""

    def __init__(
        self,
        processor: FrameProcessor,
        camera_index: int = 0,
        width: Optional[int] = None,
        height: Optional[int] = None,
        read_frame: Optional[Callable[[], Optional[np.ndarray]]] = None,
    ):
        self.processor = processor
        self.camera_index = camera_index
        self.width = width
        self.height = height
        self.handoff = FrameHandoff()
        self.error: Optional[DetectionFailure] = None

        self._read_frame = read_frame
        self._capture = None
        self._thread: Optional[threading.Thread] = None
        self._running = threading.Event()

    def start(self):
        """Open the detector and camera, then start the producer thread.

        Raises:
            ImportError: mediapipe or opencv-python is missing.
            RuntimeError: the camera could not be opened.
        """
        self.processor.open_detector()
        if self._read_frame is None:
            self._open_camera()
        self._running.set()
        self._thread = threading.Thread(target=self._run, name="handbody-capture", daemon=True)
        self._thread.start()
        logger.info("Capture started (camera %d, mode %s)", self.camera_index, self.processor.mode.value)

    def _open_camera(self):
        if cv2 is None:
            raise ImportError("opencv-python is required for camera capture. Install with: pip install opencv-python")
        self._capture = cv2.VideoCapture(self.camera_index)
        if not self._capture.isOpened():
            raise RuntimeError(f"Could not open camera {self.camera_index}")
        if self.width:
            self._capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        if self.height:
            self._capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        def read() -> Optional[np.ndarray]:
            ok, frame = self._capture.read()
            return frame if ok else None

        self._read_frame = read

    def _run(self):
        while self._running.is_set():
            frame_bgr = self._read_frame()
            if frame_bgr is None:
                time.sleep(0.01)
                continue

            # Drop on busy: skip detection entirely while the consumer holds a frame
            if self.handoff.busy:
                self.handoff.drop()
                logger.debug("Consumer busy, dropped frame (%d so far)", self.handoff.dropped)
                continue

            try:
                frame_rgb = frame_bgr[:, :, ::-1].copy()
                result = self.processor.process_frame(frame_rgb, time.monotonic())
            except DetectionFailure as e:
                self._fail(e)
                break
            except Exception as e:
                failure = DetectionFailure(f"frame processing failed: {e}")
                failure.__cause__ = e
                self._fail(failure)
                break

            self.handoff.offer((frame_bgr, result))

        self._release()

    def _fail(self, error: DetectionFailure):
        logger.error("Detection failed, stopping capture: %s", error)
        self.error = error
        self._running.clear()

    def poll(self, timeout: Optional[float] = None) -> Optional[CapturedFrame]:
        """Take the latest result. Re-raises a detection failure once capture has died."""
        item = self.handoff.take(timeout)
        if item is None and self.error is not None:
            raise self.error
        return item

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def stop(self):
        self._running.clear()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._release()
        logger.info(
            "Capture stopped (%d delivered, %d dropped)",
            self.handoff.delivered, self.handoff.dropped,
        )

    def _release(self):
        if self._capture is not None:
            self._capture.release()
            self._capture = None
