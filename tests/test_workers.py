import asyncio
from pathlib import Path

from nsfw_scanner.core.workers import AsyncWorkerPool, OutcomeKind
from nsfw_scanner.errors import ClassifierUnavailableError, NoFlaggedLabelError

from conftest import FakeClassifier, name_decoder


def process_all(pool, paths):
    async def run():
        return await asyncio.gather(*(pool.process(p) for p in paths))
    return asyncio.run(run())


def touch(directory: Path, *names):
    paths = []
    for name in names:
        path = directory / name
        path.write_bytes(b"x")
        paths.append(path)
    return paths


def test_classified_outcome(image_dir):
    [path] = touch(image_dir, "a.png")
    pool = AsyncWorkerPool(FakeClassifier({"a.png": 0.7}), name_decoder)
    [outcome] = process_all(pool, [path])
    assert outcome.kind is OutcomeKind.CLASSIFIED
    assert outcome.confidence == 0.7
    assert outcome.filename == "a.png"
    assert outcome.attempts == 1


def test_decode_failure_is_a_skip(image_dir):
    classifier = FakeClassifier(default=0.5)
    pool = AsyncWorkerPool(classifier, name_decoder)
    [outcome] = process_all(pool, [image_dir / "missing.png"])
    assert outcome.kind is OutcomeKind.SKIPPED
    assert classifier.calls == []


def test_classification_error_is_a_failure(image_dir):
    [path] = touch(image_dir, "a.png")
    pool = AsyncWorkerPool(FakeClassifier({"a.png": NoFlaggedLabelError("NSFW")}), name_decoder)
    [outcome] = process_all(pool, [path])
    assert outcome.kind is OutcomeKind.FAILED
    assert isinstance(outcome.error, NoFlaggedLabelError)


def test_unexpected_backend_exception_is_contained(image_dir):
    paths = touch(image_dir, "bad.png", "good.png")
    classifier = FakeClassifier({"bad.png": KeyError("boom"), "good.png": 0.3})
    outcomes = process_all(AsyncWorkerPool(classifier, name_decoder), paths)
    assert [o.kind for o in outcomes] == [OutcomeKind.FAILED, OutcomeKind.CLASSIFIED]


def test_timeout(image_dir):
    [path] = touch(image_dir, "slow.png")
    classifier = FakeClassifier({"slow.png": 0.5}, delays={"slow.png": 0.5})
    pool = AsyncWorkerPool(classifier, name_decoder, timeout=0.05)
    [outcome] = process_all(pool, [path])
    assert outcome.kind is OutcomeKind.FAILED
    assert "timed out" in str(outcome.error)


def test_transient_failure_retried(image_dir):
    [path] = touch(image_dir, "flaky.png")
    classifier = FakeClassifier()
    answers = [ClassifierUnavailableError("503"), 0.4]
    original = classifier._call_api

    def flaky(b64):
        classifier.scores[b64] = answers.pop(0)
        return original(b64)

    classifier._call_api = flaky
    pool = AsyncWorkerPool(classifier, name_decoder, max_attempts=2, retry_backoff=0)
    [outcome] = process_all(pool, [path])
    assert outcome.kind is OutcomeKind.CLASSIFIED
    assert outcome.confidence == 0.4
    assert outcome.attempts == 2


def test_no_retry_by_default(image_dir):
    [path] = touch(image_dir, "flaky.png")
    classifier = FakeClassifier({"flaky.png": ClassifierUnavailableError("503")})
    [outcome] = process_all(AsyncWorkerPool(classifier, name_decoder, retry_backoff=0), [path])
    assert outcome.kind is OutcomeKind.FAILED
    assert len(classifier.calls) == 1


def test_permanent_failure_not_retried(image_dir):
    [path] = touch(image_dir, "a.png")
    classifier = FakeClassifier({"a.png": NoFlaggedLabelError("NSFW")})
    pool = AsyncWorkerPool(classifier, name_decoder, max_attempts=3, retry_backoff=0)
    process_all(pool, [path])
    assert len(classifier.calls) == 1


def test_max_concurrent_caps_in_flight(image_dir):
    names = [f"{i}.png" for i in range(6)]
    paths = touch(image_dir, *names)
    classifier = FakeClassifier(default=0.5, delays={n: 0.05 for n in names})
    pool = AsyncWorkerPool(classifier, name_decoder, max_concurrent=2)
    outcomes = process_all(pool, paths)
    assert all(o.kind is OutcomeKind.CLASSIFIED for o in outcomes)
    assert classifier.max_in_flight <= 2
