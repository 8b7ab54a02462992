"""Per-request access logging for the sync API."""

import json
import logging
import os
import time
from logging.handlers import RotatingFileHandler
from typing import Any, Dict

from flask import Flask, Response, g, request


class RequestLogger:
    """Writes one JSON line per request to requests.log, with more detail in requests.debug.log."""

    def __init__(self, app: Flask | None = None, log_dir: str = "logs"):
        self.log_dir = log_dir
        self.trusted_proxies = ['127.0.0.1', '::1']
        if app:
            self.init_app(app)

    def _add_handler(self, logger: logging.Logger, filename: str, level: int) -> None:
        handler = RotatingFileHandler(
            os.path.join(self.log_dir, filename),
            maxBytes=10000000,  # 10MB
            backupCount=10,
            encoding='utf-8'
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
        if level == logging.DEBUG:
            handler.addFilter(lambda record: record.levelno == logging.DEBUG)
        logger.addHandler(handler)

    def _client_ip(self) -> str | None:
        # Trust X-Real-IP only when the request came through the local proxy
        real_ip = request.headers.get('X-Real-IP')
        if real_ip and request.remote_addr in self.trusted_proxies:
            return real_ip
        return request.remote_addr

    @staticmethod
    def _payload_summary() -> Dict[str, Any]:
        """Entry counts per top-level field of a JSON body; bodies are too large to log whole."""
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return {}
        return {
            key: len(value) if isinstance(value, (dict, list)) else type(value).__name__
            for key, value in body.items()
        }

    def init_app(self, app: Flask) -> None:
        os.makedirs(self.log_dir, exist_ok=True)

        request_logger = get_request_logger()
        request_logger.propagate = False
        request_logger.setLevel(logging.DEBUG)
        if not request_logger.handlers:
            self._add_handler(request_logger, 'requests.debug.log', logging.DEBUG)
            self._add_handler(request_logger, 'requests.log', logging.INFO)

        @app.before_request
        def start_timer() -> None:
            g.request_start_time = time.monotonic()

        @app.after_request
        def log_request(response: Response) -> Response:
            started = getattr(g, 'request_start_time', None)
            duration_ms = int((time.monotonic() - started) * 1000) if started is not None else None

            entry = {
                'method': request.method,
                'path': request.path,
                'status_code': response.status_code,
                'duration_ms': duration_ms,
            }
            request_logger.info(json.dumps(entry))

            entry.update({
                'ip_address': self._client_ip(),
                'user_agent': request.user_agent.string,
                'origin': request.headers.get('Origin'),
            })
            if request.method == 'POST':
                entry['payload'] = self._payload_summary()
            request_logger.debug(json.dumps(entry))

            return response

def get_request_logger(name: str = 'request_logger') -> logging.Logger:
    """Helper function to get the request logger instance."""
    return logging.getLogger(name)
