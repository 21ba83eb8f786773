"""
=============================================================================
WORKER THREAD POOL
=============================================================================

A fixed number of worker threads pulling connections off a bounded queue.

    accept loop ──submit()──► [ queue (queue_size) ] ──► Worker-0
                                                    ├──► Worker-1
                                                    └──► Worker-N

submit() never blocks the accept loop: when the queue is full it returns
False and the caller answers 503 itself.

Each task runs start to finish on one worker, so one connection's
exchange is never interleaved with another's.
=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args)."""

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Pulls tasks from the shared queue until it receives None.

    A task that raises is logged and counted; the worker carries on.
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout

        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s "
                f"(queued {start_time - task.submitted_at:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after {time.time() - start_time:.3f}s: {e}"
            )
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

    Usage:
        pool = ThreadPool(workers=4, queue_size=100)
        pool.start()
        if not pool.submit(handle, conn):
            reject(conn)
        ...
        pool.shutdown()
    """

    def __init__(self, workers: int = 4, queue_size: int = 100):
        if workers < 1:
            raise ValueError("ThreadPool needs at least one worker")

        self.worker_count = workers
        self.max_queue = queue_size

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False

    def start(self):
        with self._lock:
            if self._started:
                return

            logger.info(f"Starting thread pool with {self.worker_count} workers")
            for worker_id in range(self.worker_count):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True
            self._shutting_down = False

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue func(*args) for a worker.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put(Task(func=func, args=args), block=False)
            return True
        except queue.Full:
            return False

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Let queued tasks finish first.
            timeout: Upper bound in seconds on that wait.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.time() + timeout
            while self._task_queue.unfinished_tasks:
                if deadline is not None and time.time() > deadline:
                    logger.warning("Thread pool shutdown timed out with tasks pending")
                    break
                time.sleep(0.05)

        for worker in self._workers:
            worker.shutdown()
            try:
                self._task_queue.put(None, block=False)
            except queue.Full:
                pass

        for worker in self._workers:
            worker.join(timeout=2.0)

        stats = self.stats
        self._workers.clear()
        self._started = False
        logger.info(
            f"Thread pool shutdown complete: {stats['completed']} tasks completed, "
            f"{stats['failed']} failed"
        )

    @property
    def stats(self) -> dict:
        """Snapshot of the pool; the totals are logged by shutdown()."""
        return {
            "workers": len(self._workers),
            "busy": sum(1 for w in self._workers if w.state == WorkerState.BUSY),
            "queued": self._task_queue.qsize(),
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
