import worker
from spendwise.config import settings


def test_listen_queues_defaults_to_recurring_queue(monkeypatch):
    monkeypatch.delenv("QUEUE_LIST", raising=False)
    assert worker.listen_queues() == [settings.RECURRING_QUEUE_NAME]


def test_listen_queues_deduplicates(monkeypatch):
    monkeypatch.setenv("QUEUE_LIST", "recurring, default,recurring,, default")
    assert worker.listen_queues() == ["recurring", "default"]
