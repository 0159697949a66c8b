"""Concurrent byte-frequency counting.

A reader thread cuts the input stream into chunks and feeds them through a
bounded queue to a fixed pool of worker threads. Every worker tallies its
chunk on its own and sends the local map back; the caller folds those maps
into one total under a lock, so the lock is taken once per chunk rather
than once per byte.
"""
import logging
import queue
import threading
import time

import numpy as np

log = logging.getLogger(__name__)

# -----------------------------------------------------------
# TUNING CONSTANTS
# -----------------------------------------------------------
CHUNK_SIZE = 8192   # bytes per chunk handed to a worker
WORKER_COUNT = 4    # size of the worker pool
IDLE_WAIT = 0.001   # seconds to wait when a non-blocking stream has no data yet

_STOP = object()


class CountError(Exception):
    """Counting failed; no partial frequencies are returned."""


class SourceUnavailableError(CountError):
    """The input could not be opened."""


class StreamReadError(CountError):
    """Reading failed after counting had started."""


def tally(chunk):
    """Count the bytes of one chunk. Only bytes that occur are keys."""
    counts = np.bincount(np.frombuffer(chunk, dtype=np.uint8), minlength=256)
    return {int(byte): int(counts[byte]) for byte in np.flatnonzero(counts)}


def merge_frequencies(*maps):
    """Return the sum of several frequency maps without touching the inputs."""
    total = {}
    for freq_map in maps:
        for byte, count in freq_map.items():
            total[byte] = total.get(byte, 0) + count
    return total


class FrequencyCounter:
    def __init__(self, chunk_size=CHUNK_SIZE, workers=WORKER_COUNT):
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.chunk_size = chunk_size
        self.workers = workers
        self._lock = threading.Lock()

    def count(self, stream):
        """
        Count every byte of a binary stream.
        Raises StreamReadError if the stream fails part way; the counts
        gathered up to that point are dropped.

        Every call keeps its own total, so one counter may serve several
        threads at once.
        """
        total = {}
        jobs = queue.Queue(maxsize=self.workers)
        results = queue.Queue(maxsize=self.workers)
        failures = []
        stats = {"bytes": 0, "chunks": 0}

        reader = threading.Thread(
            target=self._read_chunks, args=(stream, jobs, failures, stats),
            name="freq-reader", daemon=True)
        pool = [
            threading.Thread(target=self._worker, args=(jobs, results),
                             name=f"freq-worker-{i}", daemon=True)
            for i in range(self.workers)
        ]
        supervisor = threading.Thread(
            target=self._supervise, args=(pool, results), name="freq-supervisor", daemon=True)

        reader.start()
        for worker in pool:
            worker.start()
        supervisor.start()

        while True:
            local = results.get()
            if local is _STOP:
                break
            self.merge(total, local)

        reader.join()
        supervisor.join()

        if failures:
            cause = failures[0]
            log.error("Read failed after %d bytes: %s", stats["bytes"], cause)
            raise StreamReadError(f"failed to read input stream: {cause}") from cause

        log.debug("Counted %d bytes in %d chunks with %d workers",
                  stats["bytes"], stats["chunks"], self.workers)
        return total

    def count_file(self, path):
        try:
            stream = open(path, "rb")
        except OSError as exc:
            log.error("Cannot open %s: %s", path, exc)
            raise SourceUnavailableError(f"cannot open {path}: {exc}") from exc
        with stream:
            return self.count(stream)

    def merge(self, total, frequencies):
        """Fold one worker-local map into total."""
        with self._lock:
            for byte, count in frequencies.items():
                total[byte] = total.get(byte, 0) + count

    # -----------------------------------------------------------
    # THREAD BODIES
    # -----------------------------------------------------------
    def _read_chunks(self, stream, jobs, failures, stats):
        try:
            while True:
                chunk = stream.read(self.chunk_size)
                # None means a non-blocking stream has nothing ready yet, not EOF
                if chunk is None:
                    time.sleep(IDLE_WAIT)
                    continue
                if isinstance(chunk, str):
                    raise TypeError("stream must be opened in binary mode")
                if not isinstance(chunk, (bytes, bytearray, memoryview)):
                    raise TypeError(f"read() returned {type(chunk).__name__}, expected bytes")
                if not chunk:
                    break
                stats["bytes"] += len(chunk)
                stats["chunks"] += 1
                jobs.put(bytes(chunk))
        except Exception as exc:
            failures.append(exc)
        finally:
            for _ in range(self.workers):
                jobs.put(_STOP)

    def _worker(self, jobs, results):
        while True:
            chunk = jobs.get()
            if chunk is _STOP:
                return
            results.put(tally(chunk))

    def _supervise(self, pool, results):
        for worker in pool:
            worker.join()
        results.put(_STOP)


def count(stream, chunk_size=CHUNK_SIZE, workers=WORKER_COUNT):
    return FrequencyCounter(chunk_size, workers).count(stream)


def count_file(path, chunk_size=CHUNK_SIZE, workers=WORKER_COUNT):
    return FrequencyCounter(chunk_size, workers).count_file(path)
