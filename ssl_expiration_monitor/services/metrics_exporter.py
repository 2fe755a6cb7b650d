"""
Prometheus 指标导出服务
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

import uvicorn
from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse

from ..models import ProbeRequest, ExpirationResult, ProbeOutcome
from ..errors import ProbeError
from .expiration_probe import SSLExpirationProbe
from .result_cache import ResultCache

METRIC_NAME = "days_until_expiry"
METRIC_HELP = "Days left until expiry"
METRIC_TYPE = "counter"
CONTENT_TYPE = "text/plain; version=0.0.4"
LOGGER = logging.getLogger("ssl_expiration_monitor.metrics_exporter")


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def render_days_until_expiry(outcomes: Sequence[ProbeOutcome], timestamp_ms: Optional[int] = None) -> str:
    """按域名渲染指标，探测失败的域名导出 -1"""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    lines: List[str] = [
        f"# HELP {METRIC_NAME} {METRIC_HELP}",
        f"# TYPE {METRIC_NAME} {METRIC_TYPE}",
    ]
    for outcome in outcomes:
        domain = _escape_label_value(outcome.domain)
        lines.append(f'{METRIC_NAME}{{domain="{domain}"}} {outcome.days} {timestamp_ms}')
    return "\n".join(lines) + "\n"


class ExpiryCollector:
    """每次抓取时探测所有目标，命中缓存时直接复用结果"""

    def __init__(
        self,
        targets: Sequence[ProbeRequest],
        probe: Optional[Callable[[ProbeRequest], ExpirationResult]] = None,
        cache: Optional[ResultCache] = None,
        workers: int = 10,
    ) -> None:
        self.targets = list(targets)
        self._probe = probe or SSLExpirationProbe().probe
        self._cache = cache
        self._workers = max(1, min(workers, len(self.targets) or 1))

    def _probe_one(self, request: ProbeRequest) -> ProbeOutcome:
        try:
            if self._cache is None:
                result = self._probe(request)
            else:
                result = self._cache.get_or_compute(request, lambda: self._probe(request))
        except ProbeError as exc:
            LOGGER.error("An error occurred when checking %s: %s", request.label, exc)
            return ProbeOutcome(request=request, error=exc)
        LOGGER.info("%s SSL certificate will expire in %s days", request.label, result.days)
        return ProbeOutcome(request=request, result=result)

    def collect(self) -> List[ProbeOutcome]:
        if len(self.targets) <= 1:
            return [self._probe_one(request) for request in self.targets]
        with ThreadPoolExecutor(max_workers=self._workers) as pool:
            return list(pool.map(self._probe_one, self.targets))


def build_metrics_app(collector: ExpiryCollector) -> FastAPI:
    """创建提供 /metrics 和 /health 的 FastAPI 应用"""
    app = FastAPI(title="ssl-expiration-exporter")

    @app.get("/metrics")
    def metrics_endpoint() -> Response:
        outcomes = collector.collect()
        text = render_days_until_expiry(outcomes)
        return Response(content=text, media_type=CONTENT_TYPE)

    @app.get("/health")
    def health_endpoint() -> JSONResponse:
        return JSONResponse(
            {"status": "ok", "domains": [request.label for request in collector.targets]},
            status_code=200,
        )

    return app


def serve_metrics(collector: ExpiryCollector, host: str, port: int, log_level: str = "info") -> None:
    """在前台运行导出器直到被中断"""
    app = build_metrics_app(collector)
    LOGGER.info("starting exporter on %s:%s", host, port)
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level.lower())
    server = uvicorn.Server(config)
    server.run()
