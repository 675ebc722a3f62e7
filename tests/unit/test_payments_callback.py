from urllib.parse import parse_qsl, urlsplit

from damda.payments.callback import callback_redirect_url, error_redirect_url, normalize_callback_params


def test_normalize_renames_amt_and_drops_empty_fields():
    form = {
        "authResultCode": "0000",
        "authResultMsg": "인증 성공",
        "tid": "T1",
        "orderId": "ORD1",
        "amt": "21000",
        "signature": "",
        "authToken": "tok",
        "clientId": "ignored",
    }
    assert normalize_callback_params(form) == {
        "authResultCode": "0000",
        "authResultMsg": "인증 성공",
        "tid": "T1",
        "orderId": "ORD1",
        "amount": "21000",
        "authToken": "tok",
    }


def test_normalize_accepts_amount_field():
    assert normalize_callback_params({"amount": "1000"}) == {"amount": "1000"}


def test_redirect_url_is_relative_and_encoded():
    url = callback_redirect_url({"authResultCode": "0000", "authResultMsg": "성공 & 완료"})
    parts = urlsplit(url)
    assert parts.scheme == "" and parts.netloc == ""
    assert parts.path == "/checkout/callback"
    assert dict(parse_qsl(parts.query)) == {"authResultCode": "0000", "authResultMsg": "성공 & 완료"}


def test_redirect_url_without_params():
    assert callback_redirect_url({}) == "/checkout/callback"


def test_error_redirect_url():
    query = dict(parse_qsl(urlsplit(error_redirect_url()).query))
    assert query["authResultCode"] == "ERROR"
    assert query["authResultMsg"]
