from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request, Response

import pytest

from piccrack.api.metrics import CONTENT_TYPE, REQUESTS_TOTAL_HELP, Metrics


def _request(method="GET", path="/a", query_string=""):
    builder = EnvironBuilder(method=method, path=path, query_string=query_string)
    return Request(builder.get_environ())


def test_render_starts_with_help_and_type():
    text = Metrics().render()
    lines = text.splitlines()
    assert lines[0] == f"# HELP requests_total {REQUESTS_TOTAL_HELP}"
    assert lines[1] == "# TYPE requests_total counter"
    assert len(lines) == 2


def test_inc_counter_counts_same_request():
    metrics = Metrics()
    metrics.inc_counter(_request(query_string="x=1"))
    metrics.inc_counter(_request(query_string="x=1"))
    assert 'requests_total{method="GET",url="/a?x=1"} 2' in metrics.render()


def test_methods_are_counted_separately():
    metrics = Metrics()
    metrics.inc_counter(_request("GET", "/words"))
    metrics.inc_counter(_request("POST", "/words"))
    text = metrics.render()
    assert 'requests_total{method="GET",url="/words"} 1' in text
    assert 'requests_total{method="POST",url="/words"} 1' in text


def test_wrap_counts_and_returns_handler_response():
    metrics = Metrics()
    seen = []

    def handler(request):
        seen.append(request.path)
        return Response("done")

    wrapped = metrics.wrap(handler)
    response = wrapped(_request(path="/x"))
    assert response.get_data(as_text=True) == "done"
    assert seen == ["/x"]
    assert 'url="/x"} 1' in metrics.render()


def test_label_values_are_escaped():
    metrics = Metrics()

    class _Req:
        method = "GET"
        path = '/q"uote\\'
        query_string = b""

    metrics.inc_counter(_Req())
    assert 'url="/q\\"uote\\\\"' in metrics.render()


def test_none_request_raises():
    with pytest.raises(ValueError):
        Metrics().inc_counter(None)


def test_content_type_is_prometheus_text():
    assert CONTENT_TYPE.startswith("text/plain; version=0.0.4")