"""Main application entry point for VitalZen."""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Dict, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import Config, UserConfig
from .errors import FetchCancelled
from .models import FetchState, Failed, Idle, InFlight, RecommendationResponse, Succeeded
from .orchestrator import RecommendationFetcher
from .sources.json_file import JsonFileSource
from .transport.base import Transport
from .transport.http import HttpTransport
from .utils.logger import setup_logger


class UserRecommendationPipeline:
    """Recommendation session for a single user."""

    def __init__(
        self,
        user_config: UserConfig,
        transport: Transport,
        endpoint: str,
        timeout: float,
        logger: logging.Logger,
    ):
        """
        Initialize user-specific recommendation pipeline.

        Args:
            user_config: User-specific configuration
            transport: Shared transport to the recommendation endpoint
            endpoint: Recommendation endpoint URL
            timeout: Transport timeout in seconds
            logger: Logger instance
        """
        self.user_config = user_config
        self.logger = logger

        self.source = JsonFileSource(user_config.metrics_file)
        self.fetcher = RecommendationFetcher(
            transport=transport,
            endpoint=endpoint,
            timeout=timeout,
            session_id=user_config.user_id,
        )
        self.fetcher.add_listener(self.render_state)

    def render_state(self, state: FetchState) -> None:
        """Show the session state: a waiting notice, the recommendation or the failure."""
        user_id = self.user_config.user_id

        if isinstance(state, InFlight):
            self.logger.info(f"[{user_id}] ⏳ Waiting for a personalized recommendation...")
        elif isinstance(state, Succeeded):
            self.logger.info(
                f"[{user_id}] 🧘 {state.response.header}: {state.response.description}"
            )
        elif isinstance(state, Failed):
            self.logger.error(f"[{user_id}] ✗ No recommendation ({state.kind.value}): {state.error}")
        elif isinstance(state, Idle):
            self.logger.debug(f"[{user_id}] Idle")

    async def refresh(self) -> RecommendationResponse:
        """
        Load the user's current metrics and fetch a recommendation.

        Returns:
            The recommendation

        Raises:
            MetricSourceError: If the metrics export cannot be loaded
            RecommendationError: If the fetch failed
            FetchCancelled: If a newer refresh superseded this one
        """
        user_id = self.user_config.user_id
        self.logger.info(f"[{user_id}] Refreshing recommendation for {self.user_config.name}")
        bundle = self.source.load_bundle()
        return await self.fetcher.fetch(bundle)


class RecommendationAssistant:
    """Main application class for VitalZen with multi-user support."""

    def __init__(self, config_path: str | Path | None = None, transport: Optional[Transport] = None):
        """
        Initialize VitalZen.

        Args:
            config_path: Path to configuration file
            transport: Transport override; defaults to an HttpTransport using the configured method
        """
        self.config = Config(config_path)

        log_config = self.config.logging
        self.logger = setup_logger(
            name="vitalzen",
            log_level=log_config.get("level", "INFO"),
            log_file=log_config.get("log_file"),
        )

        self.logger.info("=" * 80)
        self.logger.info("VitalZen Starting")
        self.logger.info("=" * 80)

        self.transport = transport or HttpTransport(method=self.config.method)
        self.logger.info(
            f"Recommendation endpoint: {self.config.method} {self.config.endpoint} "
            f"(timeout {self.config.timeout}s)"
        )

        self.user_pipelines: Dict[str, UserRecommendationPipeline] = {}
        self._initialize_user_pipelines()

        self._stop_event: Optional[asyncio.Event] = None
        self._resume_tasks: Set[asyncio.Future] = set()

    def _initialize_user_pipelines(self) -> None:
        """Initialize recommendation pipelines for all enabled users."""
        enabled_users = self.config.enabled_users

        if not enabled_users:
            raise RuntimeError("No enabled users found in configuration")

        for user_config in enabled_users:
            self.user_pipelines[user_config.user_id] = UserRecommendationPipeline(
                user_config=user_config,
                transport=self.transport,
                endpoint=self.config.endpoint,
                timeout=self.config.timeout,
                logger=self.logger,
            )
            self.logger.info(
                f"✓ Initialized pipeline for user: {user_config.name} ({user_config.user_id})"
            )

    async def refresh_all(self) -> Dict[str, bool]:
        """
        Refresh recommendations for all users concurrently.

        Returns:
            Mapping of user ID to whether a recommendation was obtained
        """
        self.logger.info("=" * 80)
        self.logger.info("Refreshing recommendations for all users")
        self.logger.info("=" * 80)

        user_ids = list(self.user_pipelines)
        outcomes = await asyncio.gather(
            *(self._refresh_user(user_id) for user_id in user_ids)
        )
        results = dict(zip(user_ids, outcomes))

        successful = sum(1 for ok in outcomes if ok)
        self.logger.info(
            f"Refresh completed: {successful}/{len(results)} successful, "
            f"{len(results) - successful} without a recommendation"
        )
        return results

    async def _refresh_user(self, user_id: str) -> bool:
        """Refresh one user, isolating their failure from the others."""
        try:
            await self.user_pipelines[user_id].refresh()
            return True
        except FetchCancelled:
            self.logger.info(f"[{user_id}] Refresh superseded by a newer one")
            return False
        except Exception as e:
            self.logger.error(f"[{user_id}] Refresh failed: {e}", exc_info=True)
            return False

    def on_resume(self) -> asyncio.Future:
        """
        Host resume callback: start a fresh refresh for every user.

        In-flight fetches are superseded by the new ones. Must be called from
        the event loop thread.

        Returns:
            The scheduled refresh, held until it finishes
        """
        self.logger.info("Resume requested, refreshing recommendations")
        task = asyncio.ensure_future(self.refresh_all())
        self._resume_tasks.add(task)
        task.add_done_callback(self._resume_tasks.discard)
        return task

    def run_now(self) -> bool:
        """
        Refresh all users once and exit.

        Returns:
            True if every user got a recommendation
        """
        self.logger.info("Running refresh immediately")
        return asyncio.run(self._run_once())

    async def _run_once(self) -> bool:
        try:
            results = await self.refresh_all()
        finally:
            await self.transport.aclose()
        return all(results.values())

    def run(self) -> None:
        """Start the scheduler and serve until SIGINT/SIGTERM."""
        asyncio.run(self._serve())

    async def _serve(self) -> None:
        scheduler_config = self.config.scheduler
        hour = scheduler_config["hour"]
        minute = scheduler_config["minute"]
        timezone = scheduler_config.get("timezone", "UTC")

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            func=self.refresh_all,
            trigger=CronTrigger(hour=hour, minute=minute, timezone=timezone),
            id="recommendation_refresh",
            name="Recommendation Refresh (All Users)",
            replace_existing=True,
        )

        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, self._signal_handler, signal.SIGINT)
        loop.add_signal_handler(signal.SIGTERM, self._signal_handler, signal.SIGTERM)
        if hasattr(signal, "SIGHUP"):
            loop.add_signal_handler(signal.SIGHUP, self.on_resume)

        scheduler.start()
        self.logger.info(
            f"Scheduler configured: daily refresh at {hour:02d}:{minute:02d} {timezone} "
            f"for {len(self.user_pipelines)} users (send SIGHUP to refresh now)"
        )
        self.logger.info("Press Ctrl+C to stop")

        try:
            await self._stop_event.wait()
        finally:
            await self._shutdown(scheduler)

    def _signal_handler(self, signum: int) -> None:
        """Handle shutdown signals gracefully."""
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        if self._stop_event is not None:
            self._stop_event.set()

    async def _shutdown(self, scheduler: AsyncIOScheduler) -> None:
        """Graceful shutdown."""
        self.logger.info("Shutting down VitalZen...")

        if scheduler.running:
            scheduler.shutdown(wait=False)

        for pipeline in self.user_pipelines.values():
            pipeline.fetcher.cancel()

        await self.transport.aclose()

        self.logger.info("=" * 80)
        self.logger.info("VitalZen Stopped")
        self.logger.info("=" * 80)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="VitalZen - Personalized Meditation Recommendations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vitalzen                           Run as scheduled service
  vitalzen --now                     Refresh recommendations immediately
  vitalzen --config /path/to/config.yaml
        """,
    )

    parser.add_argument(
        "--now",
        action="store_true",
        help="Refresh recommendations immediately instead of starting the scheduler",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (default: config.yaml in project root)",
    )

    args = parser.parse_args()

    try:
        app = RecommendationAssistant(config_path=args.config)

        if args.now:
            if not app.run_now():
                sys.exit(1)
        else:
            app.run()

    except FileNotFoundError as e:
        print(f"Error: {e}")
        print("\nPlease create config.yaml based on config.yaml.example")
        sys.exit(1)

    except ValueError as e:
        print(f"Configuration error: {e}")
        print("\nPlease check your config.yaml file")
        sys.exit(1)

    except RuntimeError as e:
        print(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
