# tfregistry-mcp

`tfregistry-mcp` is a Model Context Protocol (MCP) server for the public
Terraform Registry. It reads newline-delimited JSON-RPC messages on standard
input and writes one response per line to standard output. An MCP-aware
assistant can use it to look up provider documentation and Terraform modules.

## Installation

```
pip install .
```

Install the test extra to run the test suite:

```
pip install ".[test]"
pytest
```

## Running

Start the server on stdio:

```
tfregistry-mcp stdio
```

The server prints `HCP Terraform MCP Server running on stdio` to standard
error and answers messages until its input ends. An interrupt or SIGTERM shuts
it down quietly.

Without `--log-file`, log messages of level info and above go to standard
error. With it, debug-level messages are appended to the given file:

```
tfregistry-mcp --log-file /tmp/tfregistry-mcp.log stdio
```

`--log-file` is an option of the main command, so it comes before `stdio`.

Print the version, commit and build date:

```
tfregistry-mcp --version
```

Run without a command, the program prints its help. HTTP(S) proxies are taken
from the usual environment variables, such as `HTTPS_PROXY`.

## Tools

| Tool | Purpose |
|---|---|
| `resolveProviderDocID` | For `resources` and `data-sources` (the default), list the `providerDocID`, title and category of the provider's documents whose slug contains `serviceSlug`. For `guides` and `functions`, list every document of that category. For `overview`, return the overview text itself. If the namespace or version cannot be found, the `hashicorp` namespace is tried. |
| `getProviderDocs` | Fetch the full text of one provider document by its `providerDocID`. |
| `searchModules` | Search registry modules by `moduleQuery`, most downloaded first. An empty query lists all modules; an optional `currentOffset` pages through the results. |
| `moduleDetails` | Show the description, inputs, outputs, provider dependencies and examples of a module, given a `moduleID` such as `terraform-aws-modules/vpc/aws/2.1.0`. |

A failing tool call is answered with a JSON-RPC error whose message explains
what went wrong.

## Resources

- `registry://providersproviders/official` lists official providers with their overview docs.
- `registry://providersproviders/partner` lists partner providers with their overview docs.
- The template `registry://providers/{namespace}/name/{name}/version/{version}` returns the overview for one provider version. With `latest`, or anything that is not a version such as `1.2.3`, the newest release is used.

## Using it from Python

```python
from tfregistry_mcp.cli import build_server
from tfregistry_mcp.registry import new_registry_client

server = build_server(new_registry_client())
reply = server.handle_message({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
```

`MCPServer.serve(reader, writer)` runs the same loop as the command over any
pair of text streams. The module `tfregistry_mcp.registry` holds the registry
calls (`get_latest_provider_version`, `get_provider_version_id`,
`get_provider_overview_docs` and others), and `tfregistry_mcp.modules` holds
`search_modules`, `get_module_details`, `format_module_list` and
`format_module_details`.

## Limitations

- Standard input and output is the only transport; there is no HTTP or SSE server.
- Resource subscriptions are advertised but not served: there is no
  `resources/subscribe` method and no change notifications are sent.
- Messages are handled one at a time, and a request cannot be cancelled.