# toxiclient

A Python client and command-line tool for the HTTP API of a TCP
fault-injection proxy server. Use it to create proxies in front of your
services and add "toxics" such as latency, bandwidth limits, timeouts or
connection resets, so you can check how your application copes with a bad
network.

## Installation

```
pip install toxiclient
```

## Library usage

```python
from toxiclient.client import Client, Proxy
from toxiclient.models import ToxicOptions

client = Client("localhost:8474")

proxy = client.create_proxy("redis", "localhost:26379", "localhost:6379")
proxy.add_toxic("", "latency", "downstream", 1.0, {"latency": 1000, "jitter": 100})

for toxic in proxy.toxics():
    print(toxic.name, toxic.type, toxic.stream, toxic.toxicity, toxic.attributes)

proxy.update_toxic("latency_downstream", 0.5, {"latency": 500})
proxy.remove_toxic("latency_downstream")

proxy.disable()
proxy.enable()
proxy.delete()
```

`Client(endpoint, user_agent="toxiproxy-cli", timeout=30.0)`: an endpoint
without a scheme gets `http://` put in front of it. Every request carries
`Content-Type: application/json` and the client's `user_agent` as
`User-Agent`.

Client methods:

- `version()` returns the raw body of `/version` as bytes.
- `proxies()` returns a dict of proxy name to `Proxy`.
- `proxy(name)` fetches one proxy.
- `new_proxy()` returns an unsaved `Proxy` bound to the client; set its
  fields and call `save()`.
- `create_proxy(name, listen, upstream)` creates an enabled proxy.
- `populate([Proxy(...), ...])` creates or replaces several proxies at once
  and returns those the server created.
- `add_toxic(options)`, `update_toxic(options)` and `remove_toxic(options)`
  take a `ToxicOptions` (`proxy_name`, `toxic_name`, `toxic_type`, `stream`,
  `toxicity`, `attributes`) and look the proxy up by name first.
- `reset_state()` asks the server to re-enable all proxies and remove all
  toxics.

`Proxy` is a dataclass with `name`, `listen`, `upstream`, `enabled` and
`active_toxics` (a list of `Toxic`). Besides the calls above it has
`to_dict()`; `save()` creates the proxy the first time and updates it after
that.

When a toxic has no name, the server names it `<type>_<stream>`. In
`add_toxic` a toxicity of `-1` is sent as `1`; in `update_toxic` a toxicity of
`-1` leaves the toxicity out of the request so the current value is kept.

`toxiclient.models.Toxic` has `to_dict()` (an empty stream is left out) and
`Toxic.from_dict(data)`.

### Errors

- Error answers from the server are raised as `toxiclient.errors.ApiError`,
  with `message`, `status` and `context`. Its text reads like
  `HTTP 404: proxy not found`, with the failed operation in front where one
  applies, e.g. `Delete: HTTP 404: proxy not found` or
  `Create: HTTP 409: proxy already exists`.
- A request that cannot be made raises `ConnectionError`.
- A body that is not the expected JSON raises `ValueError`.
- Using a `Proxy` that has no client raises `RuntimeError`.

## Command line

```
toxiclient --host http://localhost:8474 list
toxiclient create --listen localhost:26379 --upstream localhost:6379 redis
toxiclient inspect redis
toxiclient toggle redis
toxiclient toxic add -t latency -n myToxic -a latency=100 -a jitter=50 redis
toxiclient toxic update -n myToxic --toxicity 0.5 -a jitter=25 redis
toxiclient toxic remove -n myToxic redis
toxiclient delete redis
```

Command aliases: `list` (`l`, `li`, `ls`), `inspect` (`i`, `ins`), `create`
(`c`, `new`), `toggle` (`tog`), `delete` (`d`), `toxic` (`t`); under `toxic`:
`add` (`a`), `update` (`u`), `remove` (`r`, `delete`, `d`).

`toxic add` takes `--upstream`/`-u` or `--downstream`/`-d` (the default;
giving both is an error). `--toxicity`/`--tox` must be a number between 0 and
1 and defaults to 1. `--attribute`/`-a key=value` may be repeated; values that
parse as numbers are sent as numbers.

The host defaults to `http://localhost:8474` and can also be set with the
`TOXIPROXY_URL` environment variable. `--version` prints the tool's version.
Output is coloured and laid out as a table when standard output is a
terminal, and kept plain and tab-separated otherwise. On failure the message
goes to standard error and the exit status is 1.

Toxic types commonly offered by the server:

| type         | attributes                                        |
|--------------|---------------------------------------------------|
| `latency`    | `latency=<ms>`, `jitter=<ms>`                     |
| `bandwidth`  | `rate=<KB/s>`                                     |
| `slow_close` | `delay=<ms>`                                      |
| `timeout`    | `timeout=<ms>`                                    |
| `reset_peer` | `timeout=<ms>`                                    |
| `slicer`     | `average_size`, `size_variation`, `delay=<µs>`    |

## Metrics helpers

`toxiclient.metrics.ProxyMetricCollectors` holds two in-memory
`CounterVec` families, `received_bytes_total` and `sent_bytes_total`
(named `toxiproxy_proxy_received_bytes_total` and
`toxiproxy_proxy_sent_bytes_total`), labelled by direction, proxy, listener
and upstream. `CounterVec.add(amount, *labels)`,
`with_label_values(*labels)` and `value(*labels)` count and read them;
counters refuse negative amounts and a wrong number of label values.

## What this package does not do

It is a client only. It does not include the proxy server itself, does not
forward any traffic and does not run toxics; it needs a running server to talk
to. The metrics helpers only count in memory; nothing exports or serves them.

## Running the tests

```
pip install "toxiclient[test]"
pytest
```