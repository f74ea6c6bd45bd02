"""
Health checking system for the currency annotator service
"""

import asyncio
import logging
import sys
import time
from typing import Any, Dict, Optional

import psutil

from . import __version__
from .annotation.engine import ConversionEngine
from .config import settings


class HealthChecker:
    """Liveness and readiness checks for the service"""

    def __init__(self, engine: Optional[ConversionEngine] = None):
        self.logger = logging.getLogger(__name__)
        self.startup_time = time.time()
        self.engine = engine

    def _base_status(self) -> Dict[str, Any]:
        return {
            "timestamp": time.time(),
            "uptime_seconds": time.time() - self.startup_time,
            "service": "currency-annotator",
            "version": __version__
        }

    async def check_health(self) -> Dict[str, Any]:
        """
        Basic health check - service is alive
        Returns quickly with minimal resource usage
        """
        health_status = {"healthy": True, **self._base_status()}

        try:
            checks = await asyncio.wait_for(
                self._run_health_checks(),
                timeout=settings.health_check_timeout
            )
            health_status["checks"] = checks

            if not checks["python"].get("available", False) or not checks["memory"].get("passed", True):
                health_status["healthy"] = False

        except asyncio.TimeoutError:
            self.logger.warning(f"Health check timed out after {settings.health_check_timeout}s")
            health_status["healthy"] = False
            health_status["error"] = "Health check timeout"

        except Exception as e:
            self.logger.error(f"Health check failed: {e}")
            health_status["healthy"] = False
            health_status["error"] = str(e)

        return health_status

    async def check_readiness(self) -> Dict[str, Any]:
        """
        Readiness check - the registry is loaded and a rate table is available
        """
        readiness_status = {"ready": True, **self._base_status()}

        try:
            checks = await asyncio.wait_for(
                self._run_readiness_checks(),
                timeout=settings.readiness_check_timeout
            )
            readiness_status.update(checks)

            failed_checks = [
                name for name, check in checks.get("dependencies", {}).items()
                if not check.get("available", True)
            ]

            if failed_checks:
                readiness_status["ready"] = False
                readiness_status["failed_dependencies"] = failed_checks

        except asyncio.TimeoutError:
            self.logger.warning(f"Readiness check timed out after {settings.readiness_check_timeout}s")
            readiness_status["ready"] = False
            readiness_status["error"] = "Readiness check timeout"

        except Exception as e:
            self.logger.error(f"Readiness check failed: {e}")
            readiness_status["ready"] = False
            readiness_status["error"] = str(e)

        return readiness_status

    async def _run_health_checks(self) -> Dict[str, Any]:
        return {
            "python": await self._check_python_env(),
            "memory": await self._check_memory()
        }

    async def _run_readiness_checks(self) -> Dict[str, Any]:
        dependencies = {
            "python": await self._check_python_env(),
            "registry": await self._check_registry(),
            "exchange_rates": await self._check_rates(),
            "babel": await self._check_babel()
        }
        return {"dependencies": dependencies}

    async def _check_python_env(self) -> Dict[str, Any]:
        """Check Python environment and critical imports"""
        try:
            python_version = sys.version_info

            critical_imports = []
            try:
                import fastapi
                critical_imports.append(f"fastapi=={fastapi.__version__}")
            except ImportError as e:
                return {"available": False, "error": f"Missing fastapi: {e}"}

            try:
                import pydantic
                critical_imports.append(f"pydantic=={pydantic.__version__}")
            except ImportError as e:
                return {"available": False, "error": f"Missing pydantic: {e}"}

            return {
                "available": True,
                "python_version": f"{python_version.major}.{python_version.minor}.{python_version.micro}",
                "imports": critical_imports
            }

        except Exception as e:
            return {"available": False, "error": str(e)}

    async def _check_memory(self) -> Dict[str, Any]:
        try:
            memory = psutil.virtual_memory()
            return {
                "passed": memory.percent < 95,
                "usage_percent": memory.percent,
                "available_mb": memory.available // (1024 * 1024)
            }
        except Exception as e:
            return {"passed": False, "error": str(e)}

    async def _check_registry(self) -> Dict[str, Any]:
        if self.engine is None:
            return {"available": False, "error": "Engine not initialised"}

        if self.engine.inert:
            return {"available": False, "error": str(self.engine.load_error)}

        registry = self.engine.context.registry
        return {
            "available": True,
            "symbols": len(registry.symbols),
            "issuers": len(registry.fees),
            "pivot_currency": registry.pivot_code
        }

    async def _check_rates(self) -> Dict[str, Any]:
        if self.engine is None or self.engine.rates is None:
            return {"available": False, "error": "No exchange rates loaded"}

        rates = self.engine.rates
        age_hours = rates.age_seconds() / 3600
        return {
            "available": True,
            "base": rates.base,
            "rate_count": len(rates.rates),
            "age_hours": round(age_hours, 2),
            "stale": age_hours > settings.max_rate_age_hours
        }

    async def _check_babel(self) -> Dict[str, Any]:
        """Check Babel knows the display locale"""
        try:
            import babel
            from babel import Locale, UnknownLocaleError

            try:
                Locale.parse(settings.display_locale)
            except (UnknownLocaleError, ValueError) as e:
                return {"available": False, "error": f"Unknown display locale: {e}"}

            return {
                "available": True,
                "version": babel.__version__,
                "locale": settings.display_locale
            }

        except ImportError:
            return {"available": False, "error": "babel not installed"}
