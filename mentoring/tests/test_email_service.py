from utils import email_service


def test_render_template():
    out = email_service.render_template("Hi {{name}}, see {{link}}{{missing}}", {"name": "Ana", "link": None})
    assert out == "Hi Ana, see {{missing}}"


def test_html_to_text():
    assert email_service.html_to_text("<h2>Title</h2>\n<p>Body <b>text</b></p>") == "Title\nBody text"


def test_send_batch_counts(monkeypatch):
    def flaky_send(to_email, subject, html):
        return not to_email.startswith("bad")

    monkeypatch.setattr(email_service, "send_email", flaky_send)

    result = email_service.send_batch(
        [{"email": "ok@example.com", "data": {"n": 1}}, {"email": "bad@example.com"}],
        "Hello {{n}}",
        "<p>{{n}}</p>",
    )

    assert result["success"] == 1
    assert result["failed"] == 1
    assert result["results"] == [
        {"email": "ok@example.com", "success": True},
        {"email": "bad@example.com", "success": False},
    ]
