"""Tests for detection and OCR payload normalization."""

from __future__ import annotations

import unittest

from agent_chat.normalize import (
    OCR_EMPTY,
    OCR_OPAQUE,
    OCR_TEXT,
    count_detections,
    detection_display,
    extract_ocr_text,
    ocr_display,
    summarize_detections,
)


class DetectionTests(unittest.TestCase):
    """Validate counting, pluralisation and display text."""

    def test_counts_keep_first_seen_order(self) -> None:
        results = [{"name": "dog"}, {"name": "cat"}, {"name": "dog"}]
        self.assertEqual(list(count_detections(results).items()), [("dog", 2), ("cat", 1)])

    def test_summary_pluralises_counts_above_one(self) -> None:
        results = [{"name": "cat"}, {"name": "cat"}, {"name": "dog"}]
        self.assertEqual(summarize_detections(results), "2 cats, 1 dog")

    def test_malformed_results_are_skipped(self) -> None:
        self.assertEqual(count_detections([{"score": 1}, "cat", None]), {})
        self.assertEqual(count_detections("nope"), {})

    def test_detected_display_with_annotated_image(self) -> None:
        result = detection_display(
            {"results": [{"name": "cat"}], "annotated_image": "QUJD"}, "cat"
        )
        self.assertEqual(result.text, "Detected: 1 cat")
        self.assertEqual(result.image, "data:image/png;base64,QUJD")
        self.assertFalse(result.reveal)

    def test_no_objects_with_prompt(self) -> None:
        result = detection_display({"results": []}, " person ")
        self.assertEqual(result.text, "No objects detected. Searched for: person")
        self.assertIsNone(result.image)

    def test_no_objects_without_prompt(self) -> None:
        self.assertEqual(detection_display({}, "").text, "No objects detected.")

    def test_error_prefers_detail(self) -> None:
        result = detection_display({"error": "bad", "detail": "image too small"})
        self.assertEqual(result.text, "**Error:** image too small")

    def test_error_without_detail(self) -> None:
        self.assertEqual(detection_display({"error": "bad"}).text, "**Error:** bad")


class OcrExtractionTests(unittest.TestCase):
    """Validate the ordered response-shape matchers."""

    def test_direct_field_order(self) -> None:
        extraction = extract_ocr_text({"result": "second", "text": "first"})
        self.assertEqual((extraction.kind, extraction.text), (OCR_TEXT, "first"))

    def test_extracted_text_field(self) -> None:
        self.assertEqual(extract_ocr_text({"extracted_text": "hi"}).text, "hi")

    def test_structured_blocks_joined_by_newline(self) -> None:
        payload = {"blocks": [{"text": "a"}, {"content": "b"}, {"value": "c"}, {}]}
        self.assertEqual(extract_ocr_text(payload).text, "a\nb\nc\n")

    def test_lines_used_when_no_blocks(self) -> None:
        self.assertEqual(extract_ocr_text({"lines": [{"text": "x"}]}).text, "x")

    def test_string_field_scan(self) -> None:
        self.assertEqual(extract_ocr_text({"ocr_text": "found"}).text, "found")
        self.assertEqual(extract_ocr_text({"data": "raw"}).text, "raw")

    def test_opaque_fallback(self) -> None:
        extraction = extract_ocr_text({"pages": 2})
        self.assertEqual(extraction.kind, OCR_OPAQUE)
        self.assertIn('"pages": 2', extraction.text)

    def test_empty_payload(self) -> None:
        self.assertEqual(extract_ocr_text({}).kind, OCR_EMPTY)
        self.assertEqual(extract_ocr_text(None).kind, OCR_EMPTY)
        self.assertEqual(extract_ocr_text(["a"]).kind, OCR_EMPTY)


class OcrDisplayTests(unittest.TestCase):
    def test_extracted_text(self) -> None:
        result = ocr_display({"text": "Hello"})
        self.assertEqual(result.text, "**Extracted Text:**\n\nHello")
        self.assertFalse(result.reveal)

    def test_empty_blocks_say_nothing_found(self) -> None:
        result = ocr_display({"blocks": [{}]})
        self.assertEqual(result.text, "**Extracted Text:**\n\nNo text found in image.")

    def test_opaque_result_is_json_fenced(self) -> None:
        result = ocr_display({"pages": 1})
        self.assertTrue(result.text.startswith("**OCR Result:**\n\n```json\n"))
        self.assertTrue(result.text.endswith("\n```"))

    def test_empty_payload(self) -> None:
        self.assertEqual(ocr_display({}).text, "No text found in the image.")

    def test_error_uses_nested_details(self) -> None:
        payload = {"error": "failed", "details": {"message": "unreadable"}}
        self.assertEqual(ocr_display(payload).text, "**Error:** unreadable")
        payload = {"error": "failed", "details": {"error": "timeout"}}
        self.assertEqual(ocr_display(payload).text, "**Error:** timeout")
        self.assertEqual(ocr_display({"error": "failed"}).text, "**Error:** failed")


if __name__ == "__main__":
    unittest.main()
