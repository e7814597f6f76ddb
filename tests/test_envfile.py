from __future__ import annotations

from rocketgraph_installer.lib.envfile import ConfigDocument, parse_line, tls_enabled

from conftest import TEMPLATE


class TestParseLine:
    def test_kinds(self):
        assert parse_line("\n").kind == "blank"
        assert parse_line("# just a comment\n").kind == "comment"
        assert parse_line("KEY=value\n").kind == "active"
        assert parse_line("#KEY=value\n").kind == "disabled"
        assert parse_line("# KEY=value\n").kind == "disabled"

    def test_values_are_unquoted(self):
        line = parse_line('NAME="hello world"\n')
        assert line.key == "NAME"
        assert line.value == "hello world"

    def test_prose_comment_is_not_a_key(self):
        assert parse_line("# Port for the web UI\n").kind == "comment"

    def test_unparseable_line_is_kept_as_comment(self):
        line = parse_line("not an assignment\n")
        assert line.kind == "comment"
        assert line.raw == "not an assignment\n"


class TestConfigDocument:
    def test_render_is_byte_identical(self):
        text = "A=1\r\n# note\r\n\r\n#B=2\r\nC = spaced \nno_newline=yes"
        assert ConfigDocument.parse(text).render() == text

    def test_queries(self):
        doc = ConfigDocument.parse(TEMPLATE)
        assert doc.get("MC_PORT") == "80"
        assert doc.get("MC_SSL_PORT") is None
        assert doc.is_active("MC_PORT")
        assert not doc.is_active("MC_SSL_PORT")
        assert doc.is_known("MC_SSL_PORT")
        assert not doc.is_known("NOPE")
        assert doc.line_for("MC_SSL_PORT") == "#MC_SSL_PORT=443"
        assert doc.keys()[:3] == ["MC_PORT", "MC_SSL_PORT", "MC_SSL_PUBLIC_CERT"]
        assert "MC_SSL_PORT" not in doc.active_keys()

    def test_activate_keeps_template_value_and_position(self):
        doc = ConfigDocument.parse("A=1\n#B=2\nC=3\n")
        assert doc.activate("B") is True
        assert doc.render() == "A=1\nB=2\nC=3\n"

    def test_activate_with_new_value(self):
        doc = ConfigDocument.parse("#B=2\r\n")
        doc.activate("B", "9")
        assert doc.render() == "B=9\r\n"

    def test_activate_never_touches_active_key(self):
        doc = ConfigDocument.parse("B=1\n#B=2\n")
        assert doc.activate("B", "3") is False
        assert doc.render() == "B=1\n#B=2\n"

    def test_set_active_rewrites_activates_or_appends(self):
        doc = ConfigDocument.parse("A=1\n#B=2\nlast=x")
        doc.set_active("A", "10")
        doc.set_active("B", "20")
        doc.set_active("C", "30")
        assert doc.render() == "A=10\nB=20\nlast=x\nC=30\n"

    def test_disable_comments_out(self):
        doc = ConfigDocument.parse("A=1\nB=2\n")
        assert doc.disable("A") is True
        assert doc.render() == "#A=1\nB=2\n"
        assert doc.is_known("A")
        assert not doc.is_active("A")
        assert doc.disable("A") is False

    def test_copy_is_independent(self):
        doc = ConfigDocument.parse("#A=1\n")
        other = doc.copy()
        other.activate("A")
        assert doc.render() == "#A=1\n"

    def test_save_and_load_preserve_crlf(self, tmp_path):
        p = tmp_path / ".env"
        ConfigDocument.parse("A=1\r\n#B=2\r\n").save(p)
        assert p.read_bytes() == b"A=1\r\n#B=2\r\n"
        assert ConfigDocument.load(p).render() == "A=1\r\n#B=2\r\n"


class TestTlsEnabled:
    KEYS = dict(public_cert_key="MC_SSL_PUBLIC_CERT", private_key_key="MC_SSL_PRIVATE_KEY")

    def test_disabled_in_template(self):
        assert tls_enabled(ConfigDocument.parse(TEMPLATE), **self.KEYS) is False

    def test_requires_both_keys(self):
        doc = ConfigDocument.parse(TEMPLATE)
        doc.activate("MC_SSL_PUBLIC_CERT")
        assert tls_enabled(doc, **self.KEYS) is False
        doc.activate("MC_SSL_PRIVATE_KEY")
        assert tls_enabled(doc, **self.KEYS) is True
