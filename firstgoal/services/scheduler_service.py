"""
First-Goal Pick'em background scheduler

Runs the completion sweep on a fixed interval and, when enabled, a daily
roster/schedule sync from the feed. Uses APScheduler's BackgroundScheduler;
``max_instances=1`` keeps a slow sweep from overlapping the next one.
"""

import atexit
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from firstgoal import db
from firstgoal.errors import FirstGoalError

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    checked: int = 0
    verified: List[int] = field(default_factory=list)
    awaiting: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    completed: bool = False
    error: Optional[str] = None

    def to_dict(self):
        return {
            "checked": self.checked,
            "verified": self.verified,
            "awaiting": self.awaiting,
            "failed": self.failed,
            "completed": self.completed,
            "error": self.error,
        }


class CompletionSweeper:
    """Drives started, unverified games toward verification via an oracle"""

    def __init__(self, roster, verification, oracle):
        self.roster = roster
        self.verification = verification
        self.oracle = oracle

    def sweep(self):
        """
        One pass over every open game whose start has elapsed.

        Each game is handled on its own: a failure is logged and the pass
        moves on. ``completed`` reports whether the pass itself finished.
        """
        report = SweepReport()
        try:
            games = self.roster.get_past_unverified_games()
        except SQLAlchemyError as e:
            db.session.rollback()
            report.error = str(e)
            logger.error(f"Sweep could not list unverified games: {e}", exc_info=True)
            return report

        for game in games:
            report.checked += 1
            game_id = game.id
            try:
                scorer_id = self.oracle.first_goal_scorer(game)
                if scorer_id is None:
                    report.awaiting.append(game_id)
                    logger.debug(f"Game {game_id} awaiting confirmation ({self.oracle.name})")
                    continue

                self.verification.verify_game(game_id, scorer_id, admin_verified=False)
                report.verified.append(game_id)
                logger.info(f"Sweep verified game {game_id} with scorer {scorer_id}")

            except (FirstGoalError, SQLAlchemyError) as e:
                db.session.rollback()
                report.failed.append(game_id)
                logger.error(f"Sweep failed for game {game_id}: {e}")
            except Exception as e:
                # Oracle parse errors fail only this game
                db.session.rollback()
                report.failed.append(game_id)
                logger.error(
                    f"Sweep hit unexpected error for game {game_id}: {e!r}", exc_info=True
                )

        report.completed = True
        if report.checked:
            logger.info(
                f"Sweep finished: {report.checked} checked, {len(report.verified)} verified, "
                f"{len(report.awaiting)} awaiting, {len(report.failed)} failed"
            )
        return report


class SchedulerService:
    """Manages background scheduling for sweeps and feed syncs"""

    def __init__(self, app=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self.sweep_stats = {
            "last_run": None,
            "total_runs": 0,
            "completed_runs": 0,
            "failed_runs": 0,
            "games_verified": 0,
            "last_error": None,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        atexit.register(self.shutdown)

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return

        self.scheduler.remove_all_jobs()
        self._add_core_jobs()
        self.scheduler.start()
        self.is_running = True
        logger.info("Scheduler started successfully")

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=False)
        self.is_running = False
        logger.info("Scheduler stopped")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        config = self.app.config
        initial_delay = timedelta(seconds=config.get("SWEEP_INITIAL_DELAY_SECONDS", 5))

        # First run shortly after startup, once connections are up
        self.scheduler.add_job(
            func=self.run_sweep,
            trigger=IntervalTrigger(seconds=config.get("SWEEP_INTERVAL_SECONDS", 300)),
            next_run_time=datetime.now(timezone.utc) + initial_delay,
            id="completion_sweep",
            name="Verify Completed Games",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        if config.get("FEED_SYNC_ENABLED", False):
            # Daily roster and schedule refresh (10 AM UTC)
            self.scheduler.add_job(
                func=self.run_feed_sync,
                trigger=CronTrigger(hour=10, minute=0),
                id="feed_sync",
                name="Roster and Schedule Sync",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=3600,
            )

        logger.info("Core scheduled jobs added")

    def build_sweeper(self):
        from firstgoal.services import get_services

        services = get_services()
        return CompletionSweeper(services.roster, services.verification, services.oracle)

    def run_sweep(self):
        """Sweep job body; also callable directly"""
        with self.app.app_context():
            report = self.build_sweeper().sweep()
            self.record_sweep(report)
            return report

    def run_feed_sync(self):
        from firstgoal.services import get_services

        with self.app.app_context():
            services = get_services()
            roster_ok, roster_message = services.roster_sync.sync_roster()
            schedule_ok, schedule_message = services.schedule_sync.sync_schedule()
            if not (roster_ok and schedule_ok):
                logger.warning(
                    f"Feed sync issues: roster: {roster_message}; schedule: {schedule_message}"
                )
            return roster_ok and schedule_ok

    def record_sweep(self, report):
        self.sweep_stats["last_run"] = datetime.now(timezone.utc)
        self.sweep_stats["total_runs"] += 1
        if report.completed:
            self.sweep_stats["completed_runs"] += 1
            self.sweep_stats["games_verified"] += len(report.verified)
            self.sweep_stats["last_error"] = None
        else:
            self.sweep_stats["failed_runs"] += 1
            self.sweep_stats["last_error"] = report.error

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.sweep_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()
        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def pause_job(self, job_id):
        """Pause a specific job"""
        try:
            self.scheduler.pause_job(job_id)
            return True, f"Job {job_id} paused"
        except Exception as e:
            return False, f"Failed to pause job: {e}"

    def resume_job(self, job_id):
        """Resume a specific job"""
        try:
            self.scheduler.resume_job(job_id)
            return True, f"Job {job_id} resumed"
        except Exception as e:
            return False, f"Failed to resume job: {e}"


# Global scheduler instance
scheduler_service = SchedulerService()
