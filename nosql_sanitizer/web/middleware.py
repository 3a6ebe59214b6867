"""
Web middleware - error handling, logging, request sanitization.

Sanitization runs as a before_request hook, ahead of any view or
database query:
- strip mode: operators/dangerous keys are removed, the request proceeds
- reject mode: unsafe input is answered with 400 before the view runs
"""

from flask import Flask, request, g, jsonify
import logging
import re
import time
import uuid

from nosql_sanitizer.observability.log_sanitizer import LogSanitizer
from nosql_sanitizer.sanitization.detector import detect_mongo_operators, validate_sanitization
from nosql_sanitizer.sanitization.sanitizer import sanitize_data

logger = logging.getLogger(__name__)


def setup_middleware(app: Flask):
    """Setup Flask middleware"""

    @app.before_request
    def before_request():
        """Track request timing and assign request ID"""
        g.request_id = str(uuid.uuid4())[:8]
        g.start_time = time.time()

        logger.info(
            f"[{g.request_id}] {request.method} {request.path} "
            f"from {request.remote_addr}"
        )

    @app.after_request
    def after_request(response):
        """Log response and timing"""
        elapsed_ms = (time.time() - g.get("start_time", time.time())) * 1000

        logger.info(
            f"[{g.get('request_id', 'unknown')}] {response.status_code} "
            f"in {elapsed_ms:.2f}ms"
        )

        response.headers["X-Request-ID"] = g.get("request_id", "unknown")

        return response

    @app.errorhandler(400)
    def bad_request(e):
        """Handle bad request"""
        return jsonify({
            "success": False,
            "error": "Bad request",
            "request_id": g.get("request_id", "unknown"),
            "details": getattr(e, "description", str(e)),
        }), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "success": False,
            "error": "Not found",
            "request_id": g.get("request_id", "unknown"),
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        """Handle method not allowed"""
        return jsonify({
            "success": False,
            "error": "Method not allowed",
            "request_id": g.get("request_id", "unknown"),
        }), 405

    @app.errorhandler(500)
    def server_error(e):
        request_id = g.get("request_id", "unknown")
        logger.error(f"[{request_id}] Internal server error: {e}")
        return jsonify({
            "success": False,
            "error": "Internal server error",
            "request_id": request_id,
        }), 500


# qs-style bracket keys: "password[$ne]", "tags[]", "user[address][city]"
_BRACKET_KEY_PATTERN = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
_BRACKET_SEGMENT_PATTERN = re.compile(r"\[([^\[\]]*)\]")

# Nested segments decoded per key, the remainder stays one literal key
MAX_PARAM_DEPTH = 5


def _split_param_key(key: str):
    """
    Split a bracket-notation key into path segments.

    "a[b][c]" -> ["a", "b", "c"], "a[]" -> ["a", ""], "a" -> ["a"]
    """
    match = _BRACKET_KEY_PATTERN.match(key)
    if not match:
        return [key]

    segments = [match.group(1)] + _BRACKET_SEGMENT_PATTERN.findall(match.group(2))
    if len(segments) > MAX_PARAM_DEPTH + 1:
        rest = "".join(f"[{s}]" for s in segments[MAX_PARAM_DEPTH + 1:])
        segments = segments[: MAX_PARAM_DEPTH + 1] + [rest]
    return segments


def decode_params(params) -> dict:
    """
    Decode a query string / form MultiDict into nested data.

    Repeated keys keep every value as a list, bracket keys become nested
    mappings so operator keys are visible to detection and sanitization:

        ?tag=a&tag=b             -> {"tag": ["a", "b"]}
        ?password[$ne]=x         -> {"password": {"$ne": "x"}}
        ?ids[]=1&ids[]=2         -> {"ids": ["1", "2"]}

    A bracket key that conflicts with an existing scalar is kept flat.
    """
    decoded = {}

    for key, values in params.lists():
        value = values[0] if len(values) == 1 else list(values)
        segments = _split_param_key(key)

        if len(segments) == 1:
            decoded[key] = value
            continue

        # "a[][b]" has no unambiguous shape
        if "" in segments[1:-1]:
            decoded[key] = value
            continue

        node = decoded
        for segment in segments[:-2]:
            node = node.setdefault(segment, {})
            if not isinstance(node, dict):
                break
        else:
            parent, last = segments[-2], segments[-1]
            if last == "":
                existing = node.setdefault(parent, [])
                if isinstance(existing, list):
                    existing.extend(values)
                    continue
            else:
                container = node.setdefault(parent, {})
                if isinstance(container, dict):
                    container[last] = value
                    continue

        decoded[key] = value

    return decoded


def _request_body():
    """Decoded JSON body or form fields (None when absent/malformed)"""
    if request.is_json:
        return request.get_json(silent=True)
    if request.form:
        return decode_params(request.form)
    return None


def setup_sanitization(app: Flask, mode: str = "strip", audit: bool = True):
    """
    Install NoSQL sanitization for every request.

    Results are exposed as g.sanitized_body / g.sanitized_query (see
    get_sanitized_body / get_sanitized_query); request.view_args values
    are replaced in place so views receive sanitized arguments.

    Args:
        app: Flask app
        mode: "strip" (sanitize and continue) or "reject" (400 on unsafe input)
        audit: Log a warning for every request carrying operators
    """
    if mode not in ("strip", "reject"):
        raise ValueError(f"Unknown sanitization mode: {mode}")

    @app.before_request
    def sanitize_request():
        request_id = g.get("request_id", "unknown")

        parts = {
            "body": _request_body(),
            "query": decode_params(request.args),
        }

        if audit:
            for name, data in parts.items():
                findings = detect_mongo_operators(data)
                if findings:
                    # Security audit log
                    logger.warning(
                        f"[{request_id}] NOSQL OPERATORS IN {name.upper()}: "
                        f"{request.method} {request.path} from {request.remote_addr} - "
                        f"{LogSanitizer.format_findings(findings)}"
                    )

        if mode == "reject":
            unsafe = [name for name, data in parts.items() if not validate_sanitization(data)]
            if unsafe:
                logger.warning(
                    f"[{request_id}] REQUEST REJECTED: unsafe {', '.join(unsafe)} "
                    f"on {request.method} {request.path}"
                )
                return jsonify({
                    "success": False,
                    "error": "Invalid request data",
                    "message": "Request contains potentially malicious content",
                    "request_id": request_id,
                }), 400

        g.sanitized_body = sanitize_data(parts["body"])
        g.sanitized_query = sanitize_data(parts["query"])

        # Route variable names come from the app, only values are user input
        if request.view_args:
            request.view_args = {
                name: sanitize_data(value, 1)
                for name, value in request.view_args.items()
            }

    logger.info(f"✓ Request sanitization enabled (mode={mode}, audit={audit})")


def get_sanitized_body():
    """Sanitized JSON/form body of the current request (None if no body)"""
    return g.get("sanitized_body")


def get_sanitized_query() -> dict:
    """Sanitized query string of the current request"""
    return g.get("sanitized_query", {})
