"""Tests for the termgv command-line interface"""

import pytest

import termgv.cli as cli
from termgv.alignment import AlignedRead, Alignment, build_rendering_contexts
from termgv.constants import DEFAULT_VIEW_HEIGHT, DEFAULT_VIEW_WIDTH, ExportFormat


@pytest.fixture
def fake_alignment(make_segment):
    """One forward read covering reference positions 1-10"""
    read = AlignedRead.from_segment(make_segment(query_sequence="ACGTACGTAC"))
    read.rendering_contexts = build_rendering_contexts(read)
    return Alignment.from_reads([read], region=(1, 20))


@pytest.fixture
def patched_loader(monkeypatch, fake_alignment):
    """Replace BAM loading with the fake alignment and record the call"""
    calls = []

    def fake_load(bam, contig, start, end, reference=None):
        calls.append((bam, contig, start, end, reference))
        return fake_alignment

    monkeypatch.setattr(cli, "load_alignment", fake_load)
    return calls


class TestParseRegion:
    """Tests for samtools-style region parsing"""

    def test_full_region(self):
        assert cli.parse_region("chr1:100-200", 120) == ("chr1", 100, 200)

    def test_thousands_separators(self):
        assert cli.parse_region("chr2:1,000-1,099", 120) == ("chr2", 1000, 1099)

    def test_open_region_spans_one_screen(self):
        assert cli.parse_region("chrX:50", 80) == ("chrX", 50, 129)

    def test_surrounding_whitespace(self):
        assert cli.parse_region("  chr1:5-6 ", 10) == ("chr1", 5, 6)

    @pytest.mark.parametrize(
        "region", ["chr1", "chr1:", ":100-200", "chr1:abc", "chr1:0-10", "chr1:20-10"]
    )
    def test_invalid_regions(self, region):
        with pytest.raises(ValueError, match="Invalid region"):
            cli.parse_region(region, 100)


class TestArgumentParsing:
    """Tests for build_parser()"""

    @pytest.fixture
    def parser(self):
        return cli.build_parser()

    def test_defaults(self, parser):
        args = parser.parse_args(["reads.bam", "chr1:1-10"])

        assert args.bam == "reads.bam"
        assert args.region == "chr1:1-10"
        assert args.reference is None
        assert args.paired is False
        assert args.mods is False
        assert args.width == DEFAULT_VIEW_WIDTH
        assert args.height == DEFAULT_VIEW_HEIGHT
        assert args.theme == "dark"
        assert args.export_format is None
        assert args.output is None

    def test_all_options(self, parser):
        args = parser.parse_args(
            [
                "reads.bam",
                "chr1:1-10",
                "-r",
                "ref.fa",
                "--paired",
                "--mods",
                "--width",
                "60",
                "--height",
                "12",
                "--theme",
                "light",
                "-f",
                "svg",
                "-o",
                "out.svg",
            ]
        )

        assert args.reference == "ref.fa"
        assert args.paired is True
        assert args.mods is True
        assert args.width == 60
        assert args.height == 12
        assert args.theme == "light"
        assert args.export_format == "svg"
        assert args.output == "out.svg"

    def test_rejects_unknown_format(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["reads.bam", "chr1:1", "-f", "png"])

    def test_missing_region(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["reads.bam"])


class TestResolveFormat:
    """Tests for picking the export format from the arguments"""

    def _args(self, *argv):
        return cli.build_parser().parse_args(["reads.bam", "chr1:1", *argv])

    def test_terminal_without_output(self):
        assert cli._resolve_format(self._args()) == ExportFormat.TERMINAL

    @pytest.mark.parametrize(
        "output,expected",
        [
            ("snap.html", ExportFormat.HTML),
            ("snap.SVG", ExportFormat.SVG),
            ("snap.txt", ExportFormat.TEXT),
            ("snap", ExportFormat.TEXT),
        ],
    )
    def test_inferred_from_extension(self, output, expected):
        assert cli._resolve_format(self._args("-o", output)) == expected

    def test_explicit_format_wins(self):
        args = self._args("-f", "html", "-o", "snap.svg")
        assert cli._resolve_format(args) == ExportFormat.HTML


class TestRun:
    """Tests for main()/run() end to end"""

    def test_missing_bam(self, tmp_path, capsys):
        code = cli.main([str(tmp_path / "missing.bam"), "chr1:1-10"])

        assert code == 1
        assert "Error:" in capsys.readouterr().out

    def test_non_positive_width(self, capsys):
        code = cli.main(["reads.bam", "chr1:1-10", "--width", "0"])

        assert code == 1
        assert "must be positive" in capsys.readouterr().out

    def test_file_format_needs_output(self, capsys):
        code = cli.main(["reads.bam", "chr1:1-10", "-f", "svg"])

        assert code == 1
        assert "--output is required" in capsys.readouterr().out

    def test_invalid_region(self, patched_loader, capsys):
        code = cli.main(["reads.bam", "chr1:20-10"])

        assert code == 1
        assert patched_loader == []
        assert "Invalid region" in capsys.readouterr().out

    def test_text_export(self, patched_loader, tmp_path):
        output = tmp_path / "snap.txt"
        code = cli.main(
            [
                "reads.bam",
                "chr1:1-20",
                "--width",
                "20",
                "--height",
                "2",
                "-o",
                str(output),
            ]
        )

        assert code == 0
        assert patched_loader == [("reads.bam", "chr1", 1, 20, None)]
        lines = output.read_text(encoding="utf-8").split("\n")
        assert lines[0] == "---------►" + " " * 10
        assert lines[1] == " " * 20

    def test_svg_export(self, patched_loader, tmp_path, capsys):
        output = tmp_path / "snap.svg"
        code = cli.main(["reads.bam", "chr1:1", "--width", "20", "-o", str(output)])

        assert code == 0
        assert output.read_text(encoding="utf-8").startswith("<?xml")
        assert "Saved svg snapshot" in capsys.readouterr().out

    def test_paired_mode(self, patched_loader, fake_alignment, tmp_path):
        output = tmp_path / "snap.txt"
        code = cli.main(
            ["reads.bam", "chr1:1-20", "--width", "20", "--paired", "-o", str(output)]
        )

        assert code == 0
        assert fake_alignment.read_pairs is not None
        assert fake_alignment.show_pairs == [True]
        assert output.read_text(encoding="utf-8").startswith("---------►")

    def test_terminal_output(self, patched_loader, capsys):
        code = cli.main(["reads.bam", "chr1:1-20", "--width", "20", "--height", "1"])

        assert code == 0
        assert "---------►" in capsys.readouterr().out
