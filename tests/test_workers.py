import threading
from concurrent.futures import Future

import pytest

from flet_pdf_annotator.workers import HandleWorker, deliver, post_inline


def test_worker_runs_requests_in_order_on_one_thread():
    worker = HandleWorker("test")
    seen = []
    futures = [worker.submit(lambda i=i: seen.append((i, threading.get_ident()))) for i in range(5)]
    for future in futures:
        future.result(5)
    worker.shutdown()

    assert [i for i, _ in seen] == list(range(5))
    assert len({ident for _, ident in seen}) == 1
    assert worker.closed


def test_call_propagates_errors():
    worker = HandleWorker()

    def boom():
        raise ValueError("bad page")

    with pytest.raises(ValueError):
        worker.call(boom)
    assert worker.call(lambda: 7) == 7
    worker.shutdown()
    worker.shutdown()


def test_deliver_posts_result():
    posted = []
    results = []

    def post(fn):
        posted.append(fn)

    future = Future()
    deliver(future, post, results.append)
    future.set_result(3)

    assert results == []
    posted[0]()
    assert results == [3]


def test_deliver_routes_errors():
    errors = []
    future = Future()
    deliver(future, post_inline, on_result=lambda r: None, on_error=errors.append)
    future.set_exception(KeyError("x"))
    assert isinstance(errors[0], KeyError)


def test_deliver_logs_unhandled_errors(caplog):
    future = Future()
    deliver(future, post_inline)
    future.set_exception(RuntimeError("lost"))
    assert "Background task failed" in caplog.text
