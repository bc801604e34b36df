"""Tests for the opam file reader."""

import os

import pytest

from opamextract.constants import RelOp
from opamextract.errors import OpamSyntaxError
from opamextract.filters.ast import FAnd, FBool, FIdent, FOp, FString, IdentArg, StringArg
from opamextract.filters.formula import And, Atom, CondConstraint, CondFilter, Or
from opamextract.opamfile import load_opam, metadata_of_file, parse
from opamextract.opamfile.values import Group, Ident, List_, Logop, Option, PrefixRelop, String


class TestParser:
    """Tests for the syntax layer."""

    def test_fields_and_sections(self):
        opam = parse('''
            opam-version: "2.0"
            name: "foo"  # trailing comment
            (* block (* nested *) comment *)
            url {
              src: "https://example.com/foo.tar.gz"
              checksum: "sha256=abc"
            }
        ''')
        assert opam.get("name") == String("foo")
        section = opam.section("url")
        assert section is not None
        assert section.items.get("src") == String("https://example.com/foo.tar.gz")

    def test_option_binds_to_preceding_value(self):
        opam = parse('depends: ["ocaml" {>= "4.08"} "dune"]')
        assert opam.get("depends") == List_((
            Option(String("ocaml"), (PrefixRelop(">=", String("4.08")),)),
            String("dune"),
        ))

    def test_and_binds_tighter_than_or(self):
        opam = parse("available: a | b & c")
        assert opam.get("available") == Logop("|", Ident("a"), Logop("&", Ident("b"), Ident("c")))

    def test_groups(self):
        opam = parse('depends: [("a" | "b") "c"]')
        value = opam.get("depends")
        assert value.items[0] == Group((Logop("|", String("a"), String("b")),))

    def test_string_escapes(self):
        opam = parse(r'x: "a\"b\\c\n"' + '\ny: """raw "quoted" text"""')
        assert opam.get("x") == String('a"b\\c\n')
        assert opam.get("y") == String('raw "quoted" text')

    def test_duplicate_field(self):
        with pytest.raises(OpamSyntaxError):
            parse('name: "a"\nname: "b"')

    def test_error_reports_line(self):
        with pytest.raises(OpamSyntaxError) as excinfo:
            parse('name: "a"\nbuild: [\n', "pkg/opam")
        assert "pkg/opam" in str(excinfo.value)

    def test_unterminated_string(self):
        with pytest.raises(OpamSyntaxError):
            parse('name: "abc')


class TestMetadata:
    """Tests for interpreting parsed files."""

    def test_depends_formula(self):
        metadata = metadata_of_file(parse('''
            depends: [
              "ocaml" {>= "4.08" & build}
              ("lwt" | "async")
            ]
        '''))
        first, second = metadata.depends.items
        assert isinstance(metadata.depends, And)
        assert first.name == "ocaml"
        assert first.condition.left == CondConstraint(RelOp.GEQ, FString("4.08"))
        assert first.condition.right == CondFilter(FIdent((), "build"))
        assert second == Or((Atom("lwt"), Atom("async")))

    def test_single_dependency_is_not_wrapped(self):
        metadata = metadata_of_file(parse('depends: "ocaml"'))
        assert metadata.depends == Atom("ocaml")

    def test_available_list_is_conjunction(self):
        metadata = metadata_of_file(parse('available: [os = "linux" arch = "x86_64"]'))
        assert metadata.available == FAnd(
            FOp(RelOp.EQ, FIdent((), "os"), FString("linux")),
            FOp(RelOp.EQ, FIdent((), "arch"), FString("x86_64")),
        )

    def test_commands(self):
        metadata = metadata_of_file(parse('''
            build: [
              ["./configure" "--prefix=%{prefix}%"]
              [make "-j%{jobs}%"] {os != "win32"}
              ["dune" "runtest"] {with-test}
            ]
            install: [make "install" {true}]
        '''))
        assert len(metadata.build) == 3
        configure, make, runtest = metadata.build
        assert configure.args[1].value == StringArg("--prefix=%{prefix}%")
        assert make.args[0].value == IdentArg("make")
        assert make.filter == FOp(RelOp.NEQ, FIdent((), "os"), FString("win32"))
        assert runtest.filter == FIdent((), "with-test")
        assert len(metadata.install) == 1
        assert metadata.install[0].args[1].filter == FBool(True)

    def test_url_section(self):
        metadata = metadata_of_file(parse('''
            url {
              src: "https://example.com/a.tgz"
              checksum: ["sha256=abc" "md5=def"]
            }
        '''))
        assert metadata.url.src == "https://example.com/a.tgz"
        assert metadata.url.checksums == ("sha256=abc", "md5=def")

    def test_version_field(self):
        metadata = metadata_of_file(parse('version: "1.2.3"'))
        assert str(metadata.version) == "1.2.3"
        assert metadata_of_file(parse('name: "x"')).version is None

    def test_legacy_url_file(self, tmp_path):
        """A sibling url file supplies the source when the opam file has none."""
        (tmp_path / "opam").write_text('opam-version: "1.2"\n', encoding="utf-8")
        (tmp_path / "url").write_text('git: "https://github.com/a/b.git#v1"\nchecksum: "0123"\n', encoding="utf-8")
        metadata = load_opam(os.path.join(str(tmp_path), "opam"))
        assert metadata.url.src == "git+https://github.com/a/b.git#v1"
        assert metadata.url.checksums == ("md5=0123",)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OpamSyntaxError):
            load_opam(os.path.join(str(tmp_path), "missing", "opam"))

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "opam"
        path.write_bytes(b'opam-version: "2.0"\nsynopsis: "\xff"\n')
        with pytest.raises(OpamSyntaxError) as excinfo:
            load_opam(str(path))
        assert "invalid UTF-8" in str(excinfo.value)
