import io
from unittest.mock import patch

import pytest
from rich.console import Console

from nsfw_scanner import cli
from nsfw_scanner.config import ALL_IMAGE_SUFFIXES
from nsfw_scanner.core import BatchScanner, ScanSession
from nsfw_scanner.core.results import ClassificationResult
from nsfw_scanner.errors import ModelUnavailableError
from nsfw_scanner.ui.rich_ui import RichScanView, build_results_table

from conftest import FakeClassifier, make_png, name_decoder


class TestParseArgs:

    def test_defaults(self):
        args = cli.parse_args(["pics"])
        config = cli.build_config(args)
        assert args.api == "gemini"
        assert config.suffixes == ("png",)
        assert config.case_sensitive
        assert config.max_concurrent is None
        assert config.max_attempts == 1

    def test_all_images_ignores_case(self):
        config = cli.build_config(cli.parse_args(["pics", "--all-images", "--retries", "2",
                                                  "--max-concurrent", "4"]))
        assert config.suffixes == ALL_IMAGE_SUFFIXES
        assert not config.case_sensitive
        assert config.max_attempts == 3
        assert config.max_concurrent == 4

    def test_rejects_bad_threshold(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["pics", "--threshold", "1.5"])


class TestMain:

    def test_missing_model_aborts(self, image_dir):
        with patch.object(cli, "get_client", side_effect=ModelUnavailableError("no key")):
            assert cli.main([str(image_dir), "--no-live"]) == 1

    def test_scan_and_delete_flagged(self, image_dir):
        make_png(image_dir / "a.png")
        make_png(image_dir / "b.png")
        (image_dir / "broken.png").write_bytes(b"")
        classifier = FakeClassifier(default=0.8)
        with patch.object(cli, "get_client", return_value=classifier) as factory:
            status = cli.main([str(image_dir), "--no-live", "--delete-flagged", "--label", "NSFW"])
        assert status == 0
        assert factory.call_args.kwargs["flagged_label"] == "NSFW"
        assert sorted(p.name for p in image_dir.iterdir()) == ["broken.png"]

    def test_below_threshold_kept(self, image_dir):
        make_png(image_dir / "a.png")
        with patch.object(cli, "get_client", return_value=FakeClassifier(default=0.2)):
            assert cli.main([str(image_dir), "--no-live", "--delete-flagged"]) == 0
        assert (image_dir / "a.png").exists()


def test_delete_flagged_reports_failures(image_dir):
    for name in ["a.png", "b.png"]:
        (image_dir / name).write_bytes(b"x")
    console = Console(file=io.StringIO())
    with ScanSession(BatchScanner(FakeClassifier({"a.png": 0.9, "b.png": 0.7}), decoder=name_decoder)) as session:
        session.scan(image_dir)
        (image_dir / "a.png").unlink()
        assert cli.delete_flagged(session, 0.5, console) == 1
        assert [r.filename for r in session.snapshot()] == ["a.png"]


def test_live_view_prints_sorted_table(image_dir):
    for name in ["low.png", "high.png"]:
        (image_dir / name).write_bytes(b"x")
    out = io.StringIO()
    console = Console(file=out, width=100)
    classifier = FakeClassifier({"low.png": 0.1, "high.png": 0.95})
    with ScanSession(BatchScanner(classifier, decoder=name_decoder)) as session:
        report = RichScanView(session, console=console).run(image_dir)
    text = out.getvalue()
    assert report.classified == 2
    assert text.index("high.png") < text.index("low.png")
    assert "95.0%" in text


def test_results_table_limit():
    results = [ClassificationResult(f"{i}.png", 1 - i / 10) for i in range(5)]
    table = build_results_table(results, limit=2)
    assert table.row_count == 3


def test_live_view_detaches_when_scan_fails(image_dir):
    (image_dir / "a.png").write_bytes(b"x")
    scanner = BatchScanner(FakeClassifier(default=0.5), decoder=name_decoder)

    async def broken_scan(directory, aggregator):
        raise RuntimeError("backend gone")

    scanner.scan = broken_scan
    with ScanSession(scanner) as session:
        view = RichScanView(session, console=Console(file=io.StringIO()))
        with pytest.raises(RuntimeError):
            view.run(image_dir)
        assert session.results._listeners == []
        assert scanner.on_item_done is None
