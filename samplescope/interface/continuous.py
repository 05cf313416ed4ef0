"""
Latest-wins scheduling of frame analyses for a live camera feed.

The frame source (camera timer, file watcher, ...) calls submit() whenever a
new frame is available. At most one analysis runs at a time; a new frame
cancels whatever is in flight or queued, and only the newest frame's result
reaches the callback.
"""
from concurrent.futures import Future, ThreadPoolExecutor
import logging
import threading

from ..errors import AnalysisCancelled
from .pipeline import CancellationToken, analyze

logger = logging.getLogger(__name__)


class LatestFrameAnalyser:
    """
    Single-worker scheduler over analyze().

    Parameters
    ----------
    catalog : MaterialCatalog
    threshold_config, classifier_config : optional
        Passed to every analysis; None uses the defaults.
    callback : callable, optional
        ``callback(result)`` for each delivered AnalysisResult. Runs on the
        worker thread.
    on_error : callable, optional
        ``on_error(exc)`` for analyses that fail with anything other than
        cancellation.
    workers : int
        Classifier threads per analysis.
    analyse_fn : callable, optional
        Replacement for analyze() with the same signature.
    """

    def __init__(self, catalog, threshold_config=None, classifier_config=None,
                 callback=None, on_error=None, workers: int = 1, analyse_fn=None):
        self.catalog = catalog
        self.threshold_config = threshold_config
        self.classifier_config = classifier_config
        self.callback = callback
        self.on_error = on_error
        self.workers = workers
        self._analyse = analyse_fn or analyze

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="samplescope-frame")
        self._lock = threading.Lock()
        self._generation = 0
        self._token = None
        self._future = None
        self._closed = False
        self.latest = None
        self.delivered = 0

    def submit(self, image) -> Future:
        """
        Queue ``image`` for analysis, cancelling any older frame.

        The returned future resolves to the AnalysisResult, or to None when
        the frame was superseded before its result could be delivered.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("LatestFrameAnalyser has been shut down")
            if self._token is not None:
                self._token.cancel()
            self._generation += 1
            token = CancellationToken()
            self._token = token
            self._future = self._executor.submit(self._run, image, token, self._generation)
            return self._future

    def _run(self, image, token, generation):
        if token.cancelled:
            logger.debug(f"Frame {generation} superseded before start")
            return None
        try:
            result = self._analyse(image, self.threshold_config, self.classifier_config,
                                   self.catalog, cancel_token=token, workers=self.workers)
        except AnalysisCancelled:
            logger.debug(f"Frame {generation} cancelled")
            return None
        except Exception as e:
            logger.error(f"Frame {generation} analysis failed: {e}")
            if self.on_error is not None:
                self.on_error(e)
            raise

        with self._lock:
            if generation != self._generation:
                logger.debug(f"Frame {generation} finished after being superseded")
                return None
            self.latest = result
            self.delivered += 1
        if self.callback is not None:
            self.callback(result)
        return result

    def cancel(self):
        """Cancel the in-flight analysis, if any."""
        with self._lock:
            if self._token is not None:
                self._token.cancel()

    def wait(self, timeout=None):
        """Block until the most recently submitted frame is done; returns its result."""
        with self._lock:
            fut = self._future
        return None if fut is None else fut.result(timeout=timeout)

    def shutdown(self, wait: bool = True):
        """Cancel the pending frame and stop the worker thread."""
        with self._lock:
            self._closed = True
            if self._token is not None:
                self._token.cancel()
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
        return False
