import importlib


class _StubEngine:
    def __init__(self, text):
        self.text = text
        self.calls = []

    def chat(self, messages):
        self.calls.append(messages)
        return {"text": self.text, "meta": {"status": 200}}


def test_respond_forwards_history_and_persona(monkeypatch):
    module = importlib.import_module("assistant_chat")
    engine = _StubEngine("Sure, 3pm works.")
    monkeypatch.setattr(module, "engine", engine)

    history = [
        {"role": "user", "content": "Can we meet today?"},
        {"role": "assistant", "content": "What time?"},
    ]
    reply = module.respond("How about 3pm?", history)

    assert reply == "Sure, 3pm works."
    messages = engine.calls[0]
    assert messages[0]["role"] == "system"
    assert [m["content"] for m in messages[1:]] == [
        "Can we meet today?",
        "What time?",
        "How about 3pm?",
    ]


def test_respond_accepts_tuple_history(monkeypatch):
    module = importlib.import_module("assistant_chat")
    engine = _StubEngine("ok")
    monkeypatch.setattr(module, "engine", engine)

    module.respond("next", [("hi", "hello")])

    roles = [m["role"] for m in engine.calls[0]]
    assert roles == ["system", "user", "assistant", "user"]


def test_respond_ignores_blank_input(monkeypatch):
    module = importlib.import_module("assistant_chat")
    engine = _StubEngine("unused")
    monkeypatch.setattr(module, "engine", engine)

    assert module.respond("   ", []) == ""
    assert engine.calls == []


def test_empty_model_reply_surfaces_fallback(monkeypatch):
    module = importlib.import_module("assistant_chat")
    monkeypatch.setattr(module, "engine", _StubEngine(""))

    assert module.respond("ping", []) == module.EMPTY_REPLY


def test_history_is_capped(monkeypatch):
    module = importlib.import_module("assistant_chat")
    engine = _StubEngine("ok")
    monkeypatch.setattr(module, "engine", engine)

    history = [{"role": "user", "content": f"m{i}"} for i in range(50)]
    module.respond("last", history)

    assert len(engine.calls[0]) == module.HISTORY_LIMIT + 2
