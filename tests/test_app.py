import app
from fakes import FakeQuery


def test_main_exits_when_no_pads(monkeypatch):
    monkeypatch.setattr(app, "create_query", lambda profile: FakeQuery(connected=()))
    assert app.main(["--backend", "pygame", "--log-level", "WARNING"]) == 1


def test_backend_override_reaches_factory(monkeypatch, tmp_path):
    path = tmp_path / "pad.yaml"
    path.write_text("backend: xinput\nmax_devices: 1\n", encoding="utf-8")
    seen = []

    def create_query(profile):
        seen.append((profile.backend, profile.max_devices))
        return FakeQuery(connected=())

    monkeypatch.setattr(app, "create_query", create_query)
    app.main(["--profile", str(path), "--backend", "pygame"])
    assert seen == [("pygame", 1)]
