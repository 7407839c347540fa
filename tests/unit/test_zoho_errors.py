import httpx

from app.services.zoho_errors import ZohoApiError, ZohoAuthError, parse_error


def test_json_error_body_message_is_used():
    error = ZohoApiError(
        "failed",
        status_code=422,
        reason="Unprocessable Entity",
        response_data={"errorCode": "INVALID_DATA", "message": "An invalid value was passed"},
    )

    summary = parse_error(error)

    assert summary.message == "An invalid value was passed"
    assert summary.full_response["errorCode"] == "INVALID_DATA"


def test_html_error_page_title_is_extracted():
    page = "<html><head><title>502 Bad Gateway</title></head><body>oops</body></html>"
    error = ZohoApiError("failed", status_code=502, reason="Bad Gateway", response_data=page)

    summary = parse_error(error)

    assert summary.message == "Zoho Server Error: 502 Bad Gateway"
    assert summary.full_response == page


def test_other_http_errors_use_status_line():
    error = ZohoApiError("failed", status_code=401, reason="Unauthorized", response_data={})

    summary = parse_error(error)

    assert summary.message == "HTTP Error 401: Unauthorized"
    assert summary.full_response == "Unauthorized"


def test_network_errors_are_classified():
    request = httpx.Request("POST", "https://desk.zoho.com/api/v1/tickets")
    error = httpx.ConnectError("connection refused", request=request)

    summary = parse_error(error)

    assert summary.message == "Network Error: No response received from Zoho API."
    assert "connection refused" in summary.full_response


def test_auth_error_keeps_token_response():
    error = ZohoAuthError("invalid_code", profile_name="Acme", response_data={"error": "invalid_code"})

    summary = parse_error(error)

    assert summary.message == "invalid_code"
    assert summary.full_response == {"error": "invalid_code"}


def test_unknown_errors_fall_back_to_generic_message():
    assert parse_error(ValueError("boom")).message == "boom"
    assert parse_error(RuntimeError()).message == "An unknown error occurred."
