"""
Rate limiting middleware for API endpoints
"""
import time
from collections import defaultdict
from fastapi import Request, HTTPException
from typing import Dict
import logging

from neetquiz.config import settings

logger = logging.getLogger(__name__)

# POST endpoints that call the generative engine
GENERATION_PATH_SUFFIXES = (
    "/from-images",
    "/from-text",
    "/retake",
    "/start",
    "/admin/generate",
    "/admin/generate-all",
)


class RateLimiter:
    """
    In-memory rate limiter
    Production: Use Redis for distributed rate limiting
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_hour: int = 1000,
        generations_per_minute: int = 10
    ):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.generations_per_minute = generations_per_minute

        # Storage: {client_id: [(timestamp, count)]}
        self.minute_tracker: Dict[str, list] = defaultdict(list)
        self.hour_tracker: Dict[str, list] = defaultdict(list)
        self.generation_tracker: Dict[str, list] = defaultdict(list)

    def reset(self):
        self.minute_tracker.clear()
        self.hour_tracker.clear()
        self.generation_tracker.clear()

    def _get_client_id(self, request: Request) -> str:
        """Resolved user id forwarded by the gateway, else client IP"""
        user_id = request.headers.get("X-User-Id")
        if user_id:
            return f"user:{user_id}"

        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    @staticmethod
    def is_generation_request(request: Request) -> bool:
        return request.method == "POST" and request.url.path.rstrip("/").endswith(GENERATION_PATH_SUFFIXES)

    def _cleanup_old_entries(self, tracker: Dict[str, list], window_seconds: int):
        """Remove entries older than window"""
        cutoff_time = time.time() - window_seconds

        for client_id in list(tracker.keys()):
            tracker[client_id] = [
                (ts, count) for ts, count in tracker[client_id]
                if ts > cutoff_time
            ]
            if not tracker[client_id]:
                del tracker[client_id]

    def _check(self, tracker: Dict[str, list], client_id: str, limit: int, window: str, retry_after: int):
        used = sum(count for _, count in tracker[client_id])
        if used >= limit:
            logger.warning(f"Rate limit exceeded ({window}): {client_id}")
            raise HTTPException(
                status_code=429,
                detail={
                    "success": False,
                    "error": "rate_limit_exceeded",
                    "message": f"Too many requests. Limit: {limit} {window}",
                    "retry_after": retry_after
                }
            )
        return used

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        current_time = time.time()
        generation = self.is_generation_request(request)

        self._cleanup_old_entries(self.minute_tracker, 60)
        self._cleanup_old_entries(self.hour_tracker, 3600)
        self._cleanup_old_entries(self.generation_tracker, 60)

        minute_requests = self._check(
            self.minute_tracker, client_id, self.requests_per_minute, "requests per minute", 60
        )
        hour_requests = self._check(
            self.hour_tracker, client_id, self.requests_per_hour, "requests per hour", 3600
        )
        if generation:
            self._check(
                self.generation_tracker, client_id, self.generations_per_minute,
                "quiz generations per minute", 60
            )
            self.generation_tracker[client_id].append((current_time, 1))

        self.minute_tracker[client_id].append((current_time, 1))
        self.hour_tracker[client_id].append((current_time, 1))

        logger.debug(
            f"Rate limit check passed: {client_id} "
            f"(minute: {minute_requests + 1}, hour: {hour_requests + 1}, generation: {generation})"
        )


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
    generations_per_minute=settings.GENERATION_RATE_LIMIT_PER_MINUTE
)
