import os
import threading
import time

import pytest
from PIL import Image

from neetquiz.errors import ExtractionFailed, InputValidationError
from neetquiz.services.extraction_service import ExtractionService, ImageClassifier, StagedImage
from neetquiz.utils.temp_files import TempFileGuard


class FakeStorage:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.keys = []

    def put(self, local_path, key, content_type=None):
        if os.path.basename(key).split("-", 1)[1] in self.fail_for:
            raise RuntimeError("bucket unavailable")
        self.keys.append(key)
        return f"https://bucket.example/{key}"


class FakeClassifier:
    def __init__(self, screenshots=()):
        self.screenshots = set(screenshots)

    def is_screenshot(self, path):
        return os.path.basename(path) in self.screenshots


def stage(tmp_path, names):
    images = []
    for name in names:
        path = tmp_path / name
        path.write_bytes(b"not really an image")
        images.append(StagedImage(local_path=str(path), original_filename=name))
    return images


def text_from_url(url):
    return f"text of {url.rsplit('-', 1)[1]}"


def make_service(**kwargs):
    kwargs.setdefault("classifier", FakeClassifier())
    kwargs.setdefault("storage", FakeStorage())
    kwargs.setdefault("screenshot_ocr", lambda path: f"screenshot {os.path.basename(path)}")
    kwargs.setdefault("camera_ocr", text_from_url)
    kwargs.setdefault("max_workers", 4)
    return ExtractionService(**kwargs)


def test_failing_image_is_reported_and_batch_continues(tmp_path):
    images = stage(tmp_path, ["one.jpg", "two.jpg", "three.jpg"])
    service = make_service(storage=FakeStorage(fail_for={"two.jpg"}))

    result = service.extract_text(images)

    assert result.text == "text of one.jpg\ntext of three.jpg"
    assert result.processed_count == 2
    assert result.total == 3
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].startswith("Error processing two.jpg")
    assert not any(os.path.exists(img.local_path) for img in images)


def test_merge_keeps_input_order(tmp_path):
    images = stage(tmp_path, ["a.jpg", "b.jpg", "c.jpg"])
    delays = {"a.jpg": 0.2, "b.jpg": 0.1, "c.jpg": 0.0}
    finished = []
    lock = threading.Lock()

    def slow_ocr(url):
        name = url.rsplit("-", 1)[1]
        time.sleep(delays[name])
        with lock:
            finished.append(name)
        return name

    result = make_service(camera_ocr=slow_ocr).extract_text(images)

    assert finished[0] == "c.jpg"
    assert result.text == "a.jpg\nb.jpg\nc.jpg"


@pytest.mark.parametrize("screenshots", [set(), {"2.jpg"}])
def test_ocr_raising_for_one_image_is_reported(tmp_path, screenshots):
    images = stage(tmp_path, ["1.jpg", "2.jpg", "3.jpg"])

    def camera_ocr(url):
        if url.endswith("-2.jpg"):
            raise TimeoutError("vision model timed out")
        return text_from_url(url)

    def screenshot_ocr(path):
        raise RuntimeError("tesseract crashed")

    service = make_service(
        classifier=FakeClassifier(screenshots=screenshots),
        camera_ocr=camera_ocr,
        screenshot_ocr=screenshot_ocr,
    )

    result = service.extract_text(images)

    assert result.text == "text of 1.jpg\ntext of 3.jpg"
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].startswith("Error processing 2.jpg")
    assert not any(os.path.exists(img.local_path) for img in images)


def test_all_images_failing_raises_with_diagnostics(tmp_path):
    images = stage(tmp_path, ["x.png", "y.png"])
    service = make_service(storage=FakeStorage(fail_for={"x.png", "y.png"}))

    with pytest.raises(ExtractionFailed) as exc_info:
        service.extract_text(images)

    assert exc_info.value.status_code == 422
    assert len(exc_info.value.diagnostics) == 2
    assert exc_info.value.to_dict()["diagnostics"] == exc_info.value.diagnostics
    assert not any(os.path.exists(img.local_path) for img in images)


def test_blank_text_is_a_diagnostic(tmp_path):
    images = stage(tmp_path, ["blank.jpg", "full.jpg"])
    service = make_service(camera_ocr=lambda url: "   " if url.endswith("blank.jpg") else "content")

    result = service.extract_text(images)

    assert result.text == "content"
    assert result.diagnostics == ["No text found in blank.jpg"]


def test_screenshots_use_local_ocr(tmp_path):
    images = stage(tmp_path, ["shot.png", "photo.jpg"])
    storage = FakeStorage()
    service = make_service(classifier=FakeClassifier(screenshots={"shot.png"}), storage=storage)

    result = service.extract_text(images)

    assert result.text == "screenshot shot.png\ntext of photo.jpg"
    assert len(storage.keys) == 1
    assert storage.keys[0].endswith("-photo.jpg")


@pytest.mark.parametrize("count", [0, 11])
def test_batch_size_is_validated(tmp_path, count):
    images = stage(tmp_path, [f"{i}.jpg" for i in range(count)])

    with pytest.raises(InputValidationError):
        make_service().extract_text(images)

    assert not any(os.path.exists(img.local_path) for img in images)


def test_shared_guard_releases_once(tmp_path):
    images = stage(tmp_path, ["one.jpg"])
    guard = TempFileGuard(img.local_path for img in images)

    with guard:
        make_service().extract_text(images, guard)
        assert guard.released

    assert guard.release() == 0


def test_guard_create_and_release(tmp_path):
    guard = TempFileGuard()
    path = guard.create(suffix=".jpg")
    assert os.path.exists(path)

    assert guard.release() == 1
    assert not os.path.exists(path)
    assert guard.release() == 0
    with pytest.raises(RuntimeError):
        guard.track(str(tmp_path / "late.jpg"))


class TestImageClassifier:

    def test_disabled_treats_everything_as_camera(self, tmp_path):
        path = tmp_path / "shot.png"
        Image.new("RGB", (16, 16)).save(path)

        assert ImageClassifier(enabled=False).is_screenshot(str(path)) is False

    def test_png_without_exif_is_a_screenshot(self, tmp_path):
        path = tmp_path / "shot.png"
        Image.new("RGB", (16, 16)).save(path)

        assert ImageClassifier(enabled=True).is_screenshot(str(path)) is True

    def test_jpeg_with_exif_is_a_photo(self, tmp_path):
        path = tmp_path / "photo.jpg"
        exif = Image.Exif()
        exif[0x010F] = "PhoneMaker"
        Image.new("RGB", (16, 16)).save(path, exif=exif)

        assert ImageClassifier(enabled=True).is_screenshot(str(path)) is False

    def test_unknown_bytes_are_not_screenshots(self, tmp_path):
        path = tmp_path / "notes.bin"
        path.write_bytes(b"plain text, not an image at all")

        assert ImageClassifier(enabled=True).is_screenshot(str(path)) is False
