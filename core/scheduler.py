import threading
import time
from datetime import datetime, timedelta
from typing import Callable, List, Dict, Any, Optional
from core import logger


class Scheduler:
    """
    Task scheduler for handling one time and recurring tasks
    """
    def __init__(self, delay: float = 0.1, threaded: bool = True):
        """
        :param delay: seconds between two polls of the job list
        :param threaded: dispatch each due job on its own thread, otherwise run it inline
        """
        self.jobs: List[Dict[str, Any]] = []
        self.running = False
        self.delay = delay
        self.threaded = threaded
        self._in_flight: List[Dict[str, Any]] = []
        self._lock = threading.RLock()

    def start_loop(self):
        """
        Starts the scheduler
        :return:
        """
        if self.running:
            return
        self.running = True
        thread = threading.Thread(target=self._run_loop, daemon=True, name="AppScheduler")
        thread.start()

    def _run_loop(self):
        while self.running:
            self.run_pending()
            time.sleep(self.delay)

    def run_pending(self, now: Optional[datetime] = None) -> int:
        """
        Dispatch every job that is due and requeue the recurring ones
        :param now: reference time, defaults to the wall clock
        :return: number of dispatched jobs
        """
        now = now or datetime.now()
        jobs_to_run = []

        with self._lock:
            # Filter out jobs that are due
            pending_jobs = []
            for job in self.jobs:
                if now >= job['time']:
                    jobs_to_run.append(job)
                else:
                    pending_jobs.append(job)

            self.jobs = pending_jobs
            self._in_flight = list(jobs_to_run)

        for job in jobs_to_run:
            try:
                self._execute_job(job['name'], job['func'], *job['args'])
                logger.debug(f"[Scheduler] Dispatched job: {job['name']}")
            except Exception as e:
                logger.error(f"[Scheduler] Failed to dispatch {job['name']}: {e}")

            # daily/recurring tasks
            if job.get('daily_time'):
                job['time'] = self._get_next_daily_time(job['daily_time'])
                self._requeue_job(job)
            elif job.get('repeat') and job.get('interval'):
                # next run counts from the scheduled time, not the poll
                interval = timedelta(seconds=job['interval'])
                job['time'] = job['time'] + interval
                if job['time'] <= now:
                    job['time'] = now + interval
                self._requeue_job(job)

        return len(jobs_to_run)

    def _requeue_job(self, job: Dict[str, Any]):
        with self._lock:
            # a job removed while it was running must not come back
            if job.get('cancelled'):
                return
            self.jobs.append(job)

    def _execute_job(self, name: str, func: Callable, *args):
        """
        Start job
        :param name:
        :param func:
        :param args:
        :return:
        """
        if not self.threaded:
            func(*args)
            return
        t = threading.Thread(target=func, args=args, name=f"Job-{name}", daemon=True)
        t.start()

    def add_job(self, name: str, func: Callable, delay_seconds: float, args: tuple = (), unique: bool = False):
        """
        Adds a job. If unique=True, replaces any existing job with the same name (Debounce).

        :param name:
        :param func:
        :param delay_seconds:
        :param unique:
        :param args:
        :return: job
        """
        run_time = datetime.now() + timedelta(seconds=delay_seconds)
        job = {
            "name": name,
            "func": func,
            "args": args,
            "time": run_time,
            "repeat": False,
            "interval": None,
            "daily_time": None
        }
        self._insert_job(job, unique)
        return job

    def add_interval_job(self, name: str, func: Callable, interval_seconds: float, args: tuple = (),
                         unique: bool = True):
        """
        Adds a job that runs every interval_seconds, the first run being one interval from now
        :param name:
        :param func:
        :param interval_seconds:
        :param args:
        :param unique:
        :return: job
        """
        run_time = datetime.now() + timedelta(seconds=interval_seconds)
        job = {
            "name": name,
            "func": func,
            "args": args,
            "time": run_time,
            "repeat": True,
            "interval": interval_seconds,
            "daily_time": None
        }
        self._insert_job(job, unique)
        return job

    def add_daily_job(self, name: str, func: Callable, time_str: str, args: tuple = ()):
        """
        Add a recurring task
        :param name:
        :param func:
        :param time_str:
        :param args:
        :return:
        """
        run_time = self._get_next_daily_time(time_str)
        job = {
            "name": name,
            "func": func,
            "args": args,
            "time": run_time,
            "repeat": False,
            "interval": None,
            "daily_time": time_str
        }
        self._insert_job(job, unique=False)
        return job

    def _insert_job(self, job: Dict[str, Any], unique: bool):
        with self._lock:
            if unique:
                # Remove any existing pending jobs with this name
                self._drop_jobs(job['name'])
            self.jobs.append(job)

    def remove_job_by_name(self, name: str):
        """
        Remove the specified job from the schedule
        :param name:
        :return:
        """
        with self._lock:
            self._drop_jobs(name)

    def _drop_jobs(self, name: str):
        kept = []
        for job in self.jobs:
            if job['name'] == name:
                job['cancelled'] = True
            else:
                kept.append(job)
        self.jobs = kept
        for job in self._in_flight:
            if job['name'] == name:
                job['cancelled'] = True

    def has_job(self, name: str) -> bool:
        with self._lock:
            return any(j['name'] == name for j in self.jobs)

    @staticmethod
    def _get_next_daily_time(time_str: str):
        hour, minute = map(int, time_str.split(':'))
        now = datetime.now()
        run_time = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if run_time <= now:
            run_time += timedelta(days=1)
        return run_time

    def stop(self):
        """
        Stops the scheduler
        :return:
        """
        self.running = False
