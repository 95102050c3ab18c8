import subprocess

import pytest

from goldenrepo.errors import GoldenRepoError
from goldenrepo.services.platform import PlatformService


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeRequestsModule:
    class RequestException(Exception):
        pass

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


class FakeRunner:
    def __init__(self, stdout="{}"):
        self.stdout = stdout
        self.commands = []

    def run(self, cmd, **kwargs):
        self.commands.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr="")


def _service(requests_module=None, runner=None):
    return PlatformService(
        logger=DummyLogger(),
        command_runner=runner or FakeRunner(),
        requests_module=requests_module or FakeRequestsModule(FakeResponse({})),
        api_url="https://api.example.com/",
    )


def test_generate_token_posts_api_key():
    requests_module = FakeRequestsModule(FakeResponse({"access_token": "np-token"}))

    token = _service(requests_module).generate_token("key-1")

    assert token == "np-token"
    url, kwargs = requests_module.calls[0]
    assert url == "https://api.example.com/token"
    assert kwargs["json"] == {"api_key": "key-1"}


def test_generate_token_without_api_key_makes_no_request():
    requests_module = FakeRequestsModule(FakeResponse({"access_token": "np-token"}))

    with pytest.raises(GoldenRepoError, match="NP_API_KEY"):
        _service(requests_module).generate_token(None)

    assert requests_module.calls == []


@pytest.mark.parametrize("payload", [{}, {"access_token": ""}, {"access_token": None}, {"access_token": "null"}])
def test_generate_token_rejects_unusable_tokens(payload):
    requests_module = FakeRequestsModule(FakeResponse(payload))

    with pytest.raises(GoldenRepoError, match="usable access token"):
        _service(requests_module).generate_token("key-1")


def test_generate_token_rejects_non_json_body():
    requests_module = FakeRequestsModule(FakeResponse(ValueError("not json")))

    with pytest.raises(GoldenRepoError, match="usable access token"):
        _service(requests_module).generate_token("key-1")


def test_generate_token_wraps_transport_errors():
    requests_module = FakeRequestsModule(error=FakeRequestsModule.RequestException("connection refused"))

    with pytest.raises(GoldenRepoError, match="connection refused"):
        _service(requests_module).generate_token("key-1")


def test_read_application_flattens_attributes():
    runner = FakeRunner(
        stdout='{"id": 42, "repository_url": "https://github.com/acme/svc", '
        '"settings": {"tier": "gold", "enabled": true}, "tags": ["a"], "archived": null}'
    )

    attributes = _service(runner=runner).read_application("42")

    assert runner.commands[0] == ["np", "application", "read", "--id", "42", "--format", "json"]
    assert attributes == {
        "ID": "42",
        "REPOSITORY_URL": "https://github.com/acme/svc",
        "SETTINGS_TIER": "gold",
        "SETTINGS_ENABLED": "true",
        "TAGS": '["a"]',
        "ARCHIVED": "",
    }


def test_read_application_rejects_malformed_output():
    with pytest.raises(GoldenRepoError, match="malformed application"):
        _service(runner=FakeRunner(stdout="export APP_ID=1")).read_application("42")


def test_read_application_requires_app_id():
    runner = FakeRunner()

    with pytest.raises(GoldenRepoError, match="APP_ID"):
        _service(runner=runner).read_application("")

    assert runner.commands == []


def test_read_metadata_queries_metadata_object():
    runner = FakeRunner(stdout='{"owner": "team-a"}\n')

    metadata = _service(runner=runner).read_metadata("42")

    assert metadata == {"owner": "team-a"}
    assert runner.commands[0][-2:] == ["--query", ".metadata"]


def test_read_metadata_treats_null_as_empty():
    assert _service(runner=FakeRunner(stdout="null\n")).read_metadata("42") == {}
