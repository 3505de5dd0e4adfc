"""Hand-written stand-ins for ``requests`` sessions and responses."""

from requests.structures import CaseInsensitiveDict


class FakeResponse:
    def __init__(self, status_code=200, text="", content=None, headers=None):
        self.status_code = status_code
        self.text = text
        self.content = content if content is not None else text.encode("utf-8")
        self.headers = CaseInsensitiveDict(headers or {})
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def close(self):
        self.closed = True


class FakeSession:
    """Serve queued responses per URL; the last one repeats. Exceptions are raised."""

    def __init__(self, routes):
        self.routes = {url: list(items) if isinstance(items, list) else [items] for url, items in routes.items()}
        self.calls = []

    def get(self, url, headers=None, timeout=None, **kwargs):
        self.calls.append((url, dict(headers or {})))
        queue = self.routes[url]
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item
