import io
import json
import sys

import pytest
import responses

from toxiclient.cli import (
    CliError,
    build_parser,
    enabled_text,
    main,
    parse_attributes,
    parse_toxicity,
    sorted_attributes,
)

HOST = "http://toxi.test:8474"


class _TtyIO(io.StringIO):
    def isatty(self):
        return True


def _proxy(name, listen, upstream, enabled=True, toxics=None):
    return {
        "name": name,
        "listen": listen,
        "upstream": upstream,
        "enabled": enabled,
        "toxics": toxics or [],
    }


def test_enabled_text():
    assert enabled_text(True) == "enabled"
    assert enabled_text(False) == "disabled"


def test_parse_attributes_numbers_strings_and_skips():
    parsed = parse_attributes(["latency=100", "jitter=10.5", "mode=fast", "bad"])
    assert parsed == {"latency": 100.0, "jitter": 10.5, "mode": "fast"}
    assert isinstance(parsed["latency"], float)


def test_parse_attributes_splits_on_first_equals():
    assert parse_attributes(["k=a=b"]) == {"k": "a=b"}
    assert parse_attributes(None) == {}


def test_parse_toxicity_default_and_value():
    assert parse_toxicity("", 1.0) == 1.0
    assert parse_toxicity(None, 0.25) == 0.25
    assert parse_toxicity("0.5", 1.0) == 0.5
    assert parse_toxicity("0", 1.0) == 0.0
    assert parse_toxicity("1", 0.0) == 1.0


@pytest.mark.parametrize("value", ["1.5", "-0.1", "abc"])
def test_parse_toxicity_rejects_invalid(value):
    with pytest.raises(CliError) as info:
        parse_toxicity(value, 1.0)
    assert info.value.message == "toxicity should be a float between 0 and 1.\n"
    assert info.value.code == 1


def test_sorted_attributes():
    assert sorted_attributes({"latency": 100, "jitter": 10}) == [
        ("jitter", 10.0),
        ("latency", 100.0),
    ]
    assert sorted_attributes(None) == []


def test_parser_toxic_add_flags():
    args = build_parser().parse_args(
        ["toxic", "add", "-t", "latency", "-n", "myToxic", "-a", "latency=100",
         "-a", "jitter=50", "-u", "myProxy"]
    )
    assert args.type == "latency"
    assert args.toxicName == "myToxic"
    assert args.attribute == ["latency=100", "jitter=50"]
    assert args.upstream is True
    assert args.downstream is False
    assert args.proxy_name == ["myProxy"]


def test_parser_host_from_environment(monkeypatch):
    monkeypatch.setenv("TOXIPROXY_URL", HOST)
    assert build_parser().parse_args(["list"]).host == HOST


def test_parser_host_default(monkeypatch):
    monkeypatch.delenv("TOXIPROXY_URL", raising=False)
    assert build_parser().parse_args(["ls"]).host == "http://localhost:8474"


def test_version_flag(capsys):
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == "toxiproxy-cli version git"


def test_list_plain_output(capsys):
    body = {
        "beta": _proxy("beta", "127.0.0.1:7373", "localhost:7474", enabled=False,
                       toxics=[{"name": "x", "type": "latency", "stream": "downstream",
                                "toxicity": 1, "attributes": {}}]),
        "alpha": _proxy("alpha", "127.0.0.1:7070", "localhost:7171"),
    }
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies", json=body)
        code = main(["--host", HOST, "list"])
        user_agent = rsps.calls[0].request.headers["User-Agent"]
    assert code == 0
    assert capsys.readouterr().out == (
        "alpha\t127.0.0.1:7070\tlocalhost:7171\tenabled\t0\n"
        "beta\t127.0.0.1:7373\tlocalhost:7474\tdisabled\t1\n"
    )
    assert user_agent.startswith("toxiproxy-cli/git (")


def test_list_tty_without_proxies(monkeypatch):
    fake = _TtyIO()
    monkeypatch.setattr(sys, "stdout", fake)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies", json={})
        code = main(["--host", HOST, "list"])
    assert code == 0
    text = fake.getvalue()
    assert "no proxies" in text
    assert "Hint: create a proxy with `toxiproxy-cli create`" in text


def test_list_failure_reports_error(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies", status=500,
                 json={"error": "boom", "status": 500})
        code = main(["--host", HOST, "list"])
    assert code == 1
    assert "Failed to retrieve proxies: HTTP 500: boom" in capsys.readouterr().err


def test_create_requires_listen(capsys):
    code = main(["--host", HOST, "create", "-u", "localhost:7171", "foo"])
    assert code == 1
    assert "Required argument 'listen' was empty." in capsys.readouterr().err


def test_create_requires_name(capsys):
    code = main(["--host", HOST, "create"])
    assert code == 1
    assert "Proxy name is required as the first argument." in capsys.readouterr().err


def test_create_proxy(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, HOST + "/proxies", status=201,
                 json=_proxy("foo", "127.0.0.1:7070", "localhost:7171"))
        code = main(["--host", HOST, "create", "-l", "localhost:7070",
                     "-u", "localhost:7171", "foo"])
        sent = json.loads(rsps.calls[0].request.body)
    assert code == 0
    assert capsys.readouterr().out == "Created new proxy foo\n"
    assert sent["name"] == "foo"
    assert sent["listen"] == "localhost:7070"
    assert sent["upstream"] == "localhost:7171"
    assert sent["enabled"] is True


def test_toggle_proxy(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/foo",
                 json=_proxy("foo", "127.0.0.1:7070", "localhost:7171"))
        rsps.add(responses.POST, HOST + "/proxies/foo",
                 json=_proxy("foo", "127.0.0.1:7070", "localhost:7171", enabled=False))
        code = main(["--host", HOST, "toggle", "foo"])
        sent = json.loads(rsps.calls[1].request.body)
    assert code == 0
    assert sent["enabled"] is False
    assert capsys.readouterr().out == "Proxy foo is now disabled\n"


def test_delete_proxy(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/foo",
                 json=_proxy("foo", "127.0.0.1:7070", "localhost:7171"))
        rsps.add(responses.DELETE, HOST + "/proxies/foo", status=204)
        code = main(["--host", HOST, "delete", "foo"])
    assert code == 0
    assert capsys.readouterr().out == "Deleted proxy foo\n"


def test_inspect_plain_output(capsys):
    toxic = {"name": "lat", "type": "latency", "stream": "downstream",
             "toxicity": 1, "attributes": {"latency": 100, "jitter": 0}}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/foo",
                 json=_proxy("foo", "127.0.0.1:7070", "localhost:7171", toxics=[toxic]))
        code = main(["--host", HOST, "inspect", "foo"])
    assert code == 0
    assert capsys.readouterr().out == (
        "lat\ttype=latency\tstream=downstream\ttoxicity=1.00\t"
        "attributes=[\tjitter=0\tlatency=100\t]\n"
    )


def test_add_toxic(capsys):
    returned = {"name": "lat", "type": "latency", "stream": "upstream",
                "toxicity": 1, "attributes": {"latency": 100}}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/p",
                 json=_proxy("p", "127.0.0.1:7070", "localhost:7171"))
        rsps.add(responses.POST, HOST + "/proxies/p/toxics", json=returned)
        code = main(["--host", HOST, "toxic", "add", "-t", "latency", "-n", "lat",
                     "-a", "latency=100", "-u", "p"])
        sent = json.loads(rsps.calls[1].request.body)
    assert code == 0
    assert capsys.readouterr().out == "Added upstream latency toxic 'lat' on proxy 'p'\n"
    assert sent["stream"] == "upstream"
    assert sent["type"] == "latency"
    assert sent["toxicity"] == 1.0
    assert sent["attributes"] == {"latency": 100.0}


def test_add_toxic_rejects_both_streams(capsys):
    code = main(["--host", HOST, "toxic", "add", "-t", "latency", "-u", "-d", "p"])
    assert code == 1
    assert "Only one should be specified: upstream or downstream." in capsys.readouterr().err


def test_add_toxic_requires_type(capsys):
    code = main(["--host", HOST, "toxic", "add", "p"])
    assert code == 1
    assert "Required argument 'type' was empty." in capsys.readouterr().err


def test_toxic_requires_proxy_name(capsys):
    code = main(["--host", HOST, "toxic", "remove", "-n", "lat"])
    assert code == 1
    assert "Proxy name is missing." in capsys.readouterr().err


def test_update_toxic(capsys):
    returned = {"name": "lat", "type": "latency", "stream": "downstream",
                "toxicity": 0.5, "attributes": {"jitter": 25}}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/p",
                 json=_proxy("p", "127.0.0.1:7070", "localhost:7171"))
        rsps.add(responses.PATCH, HOST + "/proxies/p/toxics/lat", json=returned)
        code = main(["--host", HOST, "toxic", "update", "-n", "lat", "--tox", "0.5",
                     "-a", "jitter=25", "p"])
        sent = json.loads(rsps.calls[1].request.body)
    assert code == 0
    assert sent == {"attributes": {"jitter": 25.0}, "toxicity": 0.5}
    assert capsys.readouterr().out == "Updated toxic 'lat' on proxy 'p'\n"


def test_remove_toxic(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/p",
                 json=_proxy("p", "127.0.0.1:7070", "localhost:7171"))
        rsps.add(responses.DELETE, HOST + "/proxies/p/toxics/lat", status=204)
        code = main(["--host", HOST, "toxic", "d", "-n", "lat", "p"])
    assert code == 0
    assert capsys.readouterr().out == "Removed toxic 'lat' on proxy 'p'\n"


def test_remove_toxic_not_found(capsys):
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, HOST + "/proxies/p",
                 json=_proxy("p", "127.0.0.1:7070", "localhost:7171"))
        rsps.add(responses.DELETE, HOST + "/proxies/p/toxics/lat", status=404,
                 json={"error": "toxic not found", "status": 404})
        code = main(["--host", HOST, "toxic", "remove", "-n", "lat", "p"])
    assert code == 1
    assert "toxic not found" in capsys.readouterr().err