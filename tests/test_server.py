import io
import json

from tfregistry_mcp import server as srv
from tfregistry_mcp.server import (
    Resource,
    ResourceTemplate,
    TextResourceContents,
    Tool,
    ToolError,
    new_server,
)


def _request(method, params=None, msg_id=1):
    message = {"jsonrpc": "2.0", "id": msg_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def _echo_server():
    server = new_server("1.2.3")

    def echo(arguments):
        if not arguments.get("text"):
            raise ToolError("text is required and must be a string")
        return arguments["text"]

    server.add_tool(Tool("zeta", "last"), lambda arguments: "z")
    server.add_tool(Tool("echo", "Echo text"), echo)
    return server


def test_initialize_reports_server_name():
    server = new_server("1.2.3")
    response = server.handle_message(
        _request(
            "initialize",
            {
                "protocolVersion": srv.LATEST_PROTOCOL_VERSION,
                "clientInfo": {"name": "e2e-test-client", "version": "0.0.1"},
            },
        )
    )
    result = response["result"]
    assert response["id"] == 1
    assert result["serverInfo"] == {"name": "terraform-mcp-server", "version": "1.2.3"}
    assert result["capabilities"]["tools"]["listChanged"] is True
    assert result["capabilities"]["resources"] == {"subscribe": True, "listChanged": True}
    assert "logging" in result["capabilities"]


def test_initialize_falls_back_to_latest_protocol():
    server = new_server("1.2.3")
    response = server.handle_message(_request("initialize", {"protocolVersion": "1999-01-01"}))
    assert response["result"]["protocolVersion"] == srv.LATEST_PROTOCOL_VERSION


def test_tools_list_is_sorted_by_name():
    response = _echo_server().handle_message(_request("tools/list"))
    assert [tool["name"] for tool in response["result"]["tools"]] == ["echo", "zeta"]


def test_tool_to_dict_includes_schema_and_annotations():
    tool = Tool("t", "d", annotations={"readOnlyHint": True})
    data = tool.to_dict()
    assert data["inputSchema"]["type"] == "object"
    assert data["annotations"] == {"readOnlyHint": True}


def test_tool_call_returns_text_content():
    response = _echo_server().handle_message(
        _request("tools/call", {"name": "echo", "arguments": {"text": "hello"}})
    )
    result = response["result"]
    assert result["content"] == [{"type": "text", "text": "hello"}]
    assert result["isError"] is False


def test_tool_error_becomes_rpc_error():
    response = _echo_server().handle_message(
        _request("tools/call", {"name": "echo", "arguments": {}})
    )
    assert response["error"]["code"] == srv.INTERNAL_ERROR
    assert "text is required" in response["error"]["message"]
    assert "result" not in response


def test_unknown_tool():
    response = _echo_server().handle_message(_request("tools/call", {"name": "missing"}))
    assert response["error"]["code"] == srv.INVALID_PARAMS


def test_unknown_method():
    response = new_server("1").handle_message(_request("nothing/here"))
    assert response["error"]["code"] == srv.METHOD_NOT_FOUND


def test_notification_gets_no_response():
    message = {"jsonrpc": "2.0", "method": "notifications/initialized"}
    assert new_server("1").handle_message(message) is None


def test_invalid_request():
    response = new_server("1").handle_message({"jsonrpc": "2.0", "id": 3})
    assert response["error"]["code"] == srv.INVALID_REQUEST
    assert response["id"] == 3


def test_ping():
    assert new_server("1").handle_message(_request("ping"))["result"] == {}


def test_template_matches_variables():
    template = ResourceTemplate(
        "registry://providers/{namespace}/name/{name}/version/{version}", "Provider details"
    )
    assert template.matches("registry://providers/hashicorp/name/aws/version/latest") == {
        "namespace": "hashicorp",
        "name": "aws",
        "version": "latest",
    }
    assert template.matches("registry://providers/hashicorp/name/aws") is None


def test_read_fixed_resource_and_template():
    server = new_server("1")
    seen = []

    def fixed(uri):
        return [TextResourceContents(uri, "text/markdown", "fixed")]

    def templated(uri):
        seen.append(uri)
        return [TextResourceContents(uri, "text/markdown", "templated")]

    server.add_resource(Resource("registry://providersproviders/official", "Official"), fixed)
    server.add_resource_template(
        ResourceTemplate("registry://providers/{namespace}/name/{name}", "Details"), templated
    )

    fixed_resp = server.handle_message(
        _request("resources/read", {"uri": "registry://providersproviders/official"})
    )
    assert fixed_resp["result"]["contents"][0]["text"] == "fixed"

    uri = "registry://providers/hashicorp/name/dns"
    templ_resp = server.handle_message(_request("resources/read", {"uri": uri}))
    assert templ_resp["result"]["contents"] == [
        {"uri": uri, "mimeType": "text/markdown", "text": "templated"}
    ]
    assert seen == [uri]

    listed = server.handle_message(_request("resources/templates/list"))
    assert listed["result"]["resourceTemplates"][0]["uriTemplate"].endswith("{name}")


def test_read_unknown_resource():
    response = new_server("1").handle_message(
        _request("resources/read", {"uri": "registry://nothing"})
    )
    assert response["error"]["code"] == srv.INVALID_PARAMS


def test_set_level_records_level():
    server = new_server("1")
    response = server.handle_message(_request("logging/setLevel", {"level": "debug"}))
    assert response["result"] == {}
    assert server.log_level == "debug"


def test_serve_round_trip():
    server = _echo_server()
    lines = [
        json.dumps(_request("ping", msg_id=1)),
        "",
        "{not json",
        json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
        json.dumps(_request("tools/call", {"name": "echo", "arguments": {"text": "hi"}}, 2)),
    ]
    reader = io.StringIO("\n".join(lines) + "\n")
    writer = io.StringIO()
    server.serve(reader, writer)
    responses = [json.loads(line) for line in writer.getvalue().splitlines()]
    assert len(responses) == 3
    assert responses[0]["result"] == {}
    assert responses[1]["error"]["code"] == srv.PARSE_ERROR
    assert responses[2]["result"]["content"][0]["text"] == "hi"