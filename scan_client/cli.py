"""Command-line front end: scan documents and browse the saved ones.

``list`` is the dashboard, ``show`` the detail view and ``edit``/``delete``
act on a single document.
"""
import argparse
import logging
import os
import subprocess
import sys
import tempfile
from pathlib import Path

import uvicorn

from . import config
from .api import ApiError, DocumentClient
from .capture import CameraCapture, CaptureState, load_image_file
from .ocr import NO_TEXT_MESSAGE, OCRError
from .pipeline import ScanSession

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 60


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def _preview(text: str) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= _PREVIEW_CHARS else flat[:_PREVIEW_CHARS - 3] + "..."


def _word_count(text: str) -> int:
    return len(text.split())


def _edit_text(text: str) -> str:
    """Open the text in $VISUAL or $EDITOR and return what the user saved."""
    editor = os.environ.get("VISUAL") or os.environ.get("EDITOR") or "vi"
    fd, path = tempfile.mkstemp(suffix=".txt", prefix="scan-")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
        subprocess.run([editor, path], check=True)
        with open(path) as f:
            return f.read()
    finally:
        os.remove(path)


def _capture_from_camera(prompt=input):
    """Run the camera dialog interactively; returns None if cancelled."""
    with CameraCapture() as camera:
        camera.start()
        while True:
            if camera.state == CaptureState.ERROR:
                print(camera.error)
                if prompt("Retry camera? [y/N] ").strip().lower() != "y":
                    return None
                camera.start()
                continue
            if camera.state == CaptureState.LIVE:
                if prompt("Position your document and press Enter to capture (c to cancel) ").strip().lower() == "c":
                    return None
                try:
                    camera.capture()
                except Exception as e:
                    logger.error(f"Capture failed: {str(e)}")
                continue
            if camera.state == CaptureState.CAPTURED:
                print(f"Captured {len(camera.captured)} bytes.")
                choice = prompt("[u]se photo, [r]etake, [c]ancel: ").strip().lower()
                if choice == "u":
                    return camera.accept()
                if choice == "r":
                    camera.retake()
                    continue
                return None
            return None


def cmd_scan(args, client: DocumentClient) -> int:
    if args.camera:
        image = _capture_from_camera()
        if image is None:
            print("Scan cancelled.")
            return 1
    else:
        image = load_image_file(args.file)
        if not image.content_type.startswith("image/"):
            print(f"{args.file} is not an image file.")
            return 1

    session = ScanSession(client=client, user_id=args.user)

    def on_progress(percent: int) -> None:
        print(f"\rRecognizing text... {percent}%", end="", flush=True)

    try:
        result = session.recognize(image, on_progress=on_progress)
    except OCRError as e:
        print()
        print(e.message)
        return 1
    print()

    if not result.has_text:
        print(NO_TEXT_MESSAGE)
        return 1

    text = result.text
    print(text.strip())
    if args.no_save:
        return 0

    if args.edit:
        try:
            text = _edit_text(text)
        except subprocess.CalledProcessError as e:
            print(f"Editor exited with status {e.returncode}; nothing saved.")
            return 1
        if not text.strip():
            print("Extracted text is empty; nothing saved.")
            return 1

    try:
        doc = session.save(image, text)
    except ApiError as e:
        print(f"Failed to save document: {e.message}")
        return 1
    print(f"Saved document {doc['id']}")
    return 0


def cmd_list(args, client: DocumentClient) -> int:
    docs = client.list_documents(args.user)
    if not docs:
        print("No documents yet.")
        return 0
    for doc in docs:
        print(f"{doc['id']}  {doc['createdAt']}  {_preview(doc['extractedText'])}")
        print(f"    {client.url_for(doc['fileUrl'])}")
    print()
    print(f"Total documents:      {len(docs)}")
    print(f"Characters extracted: {sum(len(d['extractedText']) for d in docs)}")
    print(f"Words extracted:      {sum(_word_count(d['extractedText']) for d in docs)}")
    return 0


def cmd_show(args, client: DocumentClient) -> int:
    doc = client.get_document(args.id)
    print(f"Document: {doc['id']}")
    print(f"Created:  {doc['createdAt']}")
    print(f"Image:    {client.url_for(doc['fileUrl'])}")
    print(f"Length:   {len(doc['extractedText'])} characters")
    print(f"Words:    {_word_count(doc['extractedText'])} words")
    print()
    print(doc["extractedText"])
    return 0


def cmd_edit(args, client: DocumentClient) -> int:
    text = args.text if args.text is not None else Path(args.file).read_text()
    doc = client.update_document(args.id, text)
    print(f"Updated document {doc['id']}")
    return 0


def cmd_delete(args, client: DocumentClient) -> int:
    client.delete_document(args.id)
    print(f"Deleted document {args.id}")
    return 0


def cmd_serve(args, client: DocumentClient) -> int:
    uvicorn.run("document_service.app.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scan-client", description="Scan documents and manage their text")
    parser.add_argument("--api-url", default=config.SCAN_API_URL, help="Document service base URL")
    parser.add_argument("--user", default=config.SCAN_USER_ID, help="Owner id for listed and saved documents")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Capture or pick an image, run OCR and save it")
    source = scan.add_mutually_exclusive_group(required=True)
    source.add_argument("--camera", action="store_true", help="Capture from the camera")
    source.add_argument("--file", help="Path to an image file")
    scan.add_argument("--no-save", action="store_true", help="Only print the recognized text")
    scan.add_argument("--edit", action="store_true", help="Review and correct the text in $EDITOR before saving")
    scan.set_defaults(func=cmd_scan)

    sub.add_parser("list", help="List saved documents").set_defaults(func=cmd_list)

    show = sub.add_parser("show", help="Show one document")
    show.add_argument("id")
    show.set_defaults(func=cmd_show)

    edit = sub.add_parser("edit", help="Replace a document's extracted text")
    edit.add_argument("id")
    text = edit.add_mutually_exclusive_group(required=True)
    text.add_argument("--text")
    text.add_argument("--file", help="Read the new text from a file")
    edit.set_defaults(func=cmd_edit)

    delete = sub.add_parser("delete", help="Delete a document and its image")
    delete.add_argument("id")
    delete.set_defaults(func=cmd_delete)

    serve = sub.add_parser("serve", help="Run the document service")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    client = DocumentClient(base_url=args.api_url)
    try:
        return args.func(args, client)
    except ApiError as e:
        print(f"Error: {e.message}")
        return 1
    except OSError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
