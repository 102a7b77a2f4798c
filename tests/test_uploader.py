import asyncio
import os
import sys
from io import BytesIO

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))

from aiohttp import ClientSession, web
from aiohttp.test_utils import TestServer
from PIL import Image

from client.uploader import (
    AnalysisUploader,
    SelectedFile,
    SubmissionInProgressError,
    UploadFailedError,
    UploadSelection,
)
from config import CLIENT_FAILURE_MESSAGES


def _selected(image_factory, name, width=64, height=32):
    return SelectedFile(filename=name, data=image_factory(width, height), content_type="image/png")


def test_selection_truncates_each_category(image_factory):
    selection = UploadSelection()
    kept = selection.add("moments", [_selected(image_factory, f"m{i}.png") for i in range(6)])
    assert [f.filename for f in kept] == ["m0.png", "m1.png", "m2.png", "m3.png"]

    selection.add("playlist", [_selected(image_factory, "p0.png")])
    kept = selection.add("playlist", [_selected(image_factory, f"p{i}.png") for i in range(1, 4)])
    assert [f.filename for f in kept] == ["p0.png", "p1.png"]

    assert selection.total() == 6


def test_selection_remove_and_unknown_category(image_factory):
    selection = UploadSelection()
    selection.add("snaps", [_selected(image_factory, "a.png"), _selected(image_factory, "b.png")])
    assert selection.remove("snaps", 0).filename == "a.png"
    assert [f.filename for f in selection.files("snaps")] == ["b.png"]

    with pytest.raises(ValueError):
        selection.add("selfies", [])

    selection.clear()
    assert selection.total() == 0


def test_compress_all_outputs_bounded_jpegs(image_factory):
    selection = UploadSelection()
    selection.add("moments", [_selected(image_factory, "wide.png", 3000, 1000)])
    selection.add("snaps", [_selected(image_factory, "small.png", 100, 50)])

    uploader = AnalysisUploader(endpoint="http://unused", max_edge=1280, quality=80)
    compressed = asyncio.run(uploader.compress_all(selection))

    assert [(c, name) for c, name, _ in compressed] == [("moments", "wide.jpg"), ("snaps", "small.jpg")]
    sizes = [Image.open(BytesIO(data)).size for _, _, data in compressed]
    assert sizes == [(1280, 427), (100, 50)]


def test_selected_file_from_path_feeds_compression(tmp_path, image_factory):
    path = tmp_path / "night-kitchen.png"
    path.write_bytes(image_factory(2000, 500))

    selected = SelectedFile.from_path(str(path))
    assert selected.filename == "night-kitchen.png"
    assert selected.data == path.read_bytes()

    selection = UploadSelection()
    selection.add("moments", [selected])
    uploader = AnalysisUploader(endpoint="http://unused", max_edge=1280)
    [(category, name, data)] = asyncio.run(uploader.compress_all(selection))
    assert (category, name) == ("moments", "night-kitchen.jpg")
    assert Image.open(BytesIO(data)).size == (1280, 320)


async def _submit_to(handler, uploader_kwargs=None, **submit_kwargs):
    app = web.Application()
    app.router.add_post("/api/analyze", handler)
    server = TestServer(app)
    await server.start_server()
    try:
        uploader = AnalysisUploader(endpoint=str(server.make_url("/api/analyze")), **(uploader_kwargs or {}))
        async with ClientSession() as session:
            return await uploader.submit(session=session, **submit_kwargs)
    finally:
        await server.close()


def test_submit_sends_one_multipart_request(image_factory):
    received = {"calls": 0}

    async def handler(request):
        received["calls"] += 1
        form = await request.post()
        received["reflection"] = form["reflection"]
        received["language"] = form["language"]
        received["moments"] = [(f.filename, f.content_type) for f in form.getall("moments")]
        received["snaps"] = len(form.getall("snaps", []))
        return web.json_response({"analysis": "a", "celebrity": "c", "talent": "t", "advice": "d"})

    selection = UploadSelection()
    selection.add("moments", [_selected(image_factory, f"m{i}.png") for i in range(5)])

    result = asyncio.run(
        _submit_to(handler, selection=selection, reflection="  " + "z" * 2500 + "  ", language="en")
    )

    assert result["analysis"] == "a"
    assert received["calls"] == 1
    assert received["reflection"] == "z" * 2000
    assert received["language"] == "en"
    assert received["moments"] == [(f"m{i}.jpg", "image/jpeg") for i in range(4)]
    assert received["snaps"] == 0


def test_server_error_becomes_single_user_message(image_factory):
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        return web.json_response({"error": "boom", "kind": "unexpected"}, status=500)

    selection = UploadSelection()
    selection.add("snaps", [_selected(image_factory, "s.png")])

    with pytest.raises(UploadFailedError) as exc:
        asyncio.run(_submit_to(handler, selection=selection, reflection="hi", language="zh"))
    assert exc.value.message == CLIENT_FAILURE_MESSAGES["zh"]
    assert exc.value.status == 500
    assert calls["count"] == 1


def test_undecodable_image_fails_without_request():
    calls = {"count": 0}

    async def handler(request):
        calls["count"] += 1
        return web.json_response({})

    selection = UploadSelection()
    selection.add("moments", [SelectedFile(filename="broken.png", data=b"not an image")])

    with pytest.raises(UploadFailedError) as exc:
        asyncio.run(_submit_to(handler, selection=selection, language="en"))
    assert exc.value.message == CLIENT_FAILURE_MESSAGES["en"]
    assert calls["count"] == 0


def test_resubmission_is_blocked_while_in_flight(image_factory):
    async def handler(request):
        await asyncio.sleep(0.2)
        return web.json_response({"analysis": "a"})

    async def scenario():
        app = web.Application()
        app.router.add_post("/api/analyze", handler)
        server = TestServer(app)
        await server.start_server()
        try:
            uploader = AnalysisUploader(endpoint=str(server.make_url("/api/analyze")))
            selection = UploadSelection()
            selection.add("snaps", [_selected(image_factory, "s.png")])

            first = asyncio.create_task(uploader.submit(selection, reflection="hi"))
            await asyncio.sleep(0)
            assert uploader.busy
            with pytest.raises(SubmissionInProgressError):
                await uploader.submit(selection, reflection="again")

            result = await first
            assert not uploader.busy
            return result
        finally:
            await server.close()

    assert asyncio.run(scenario()) == {"analysis": "a"}


def test_poster_labels_follow_language():
    assert AnalysisUploader.poster_labels("en")["talent"] == "Hidden Talent"
    assert AnalysisUploader.poster_labels("zh")["talent"] == "隐藏天赋"
