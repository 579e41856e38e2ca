# src/awg_backend/pages.py
from __future__ import annotations
import base64
import html
import io
import logging
import shutil
from pathlib import Path
from typing import Dict, Tuple
from urllib.parse import quote

import qrcode
from qrcode.image.svg import SvgPathImage

logger = logging.getLogger("awg_backend.pages")

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>VPN configs</title>
</head>
<body>
<h1>VPN configs</h1>
{configs}
</body>
</html>
"""

CONFIG_TEMPLATE = """<section class="config">
<h2>{name}</h2>
<a download="{file}" href="data:text/plain;charset=utf-8,{href}">{file}</a>
<img alt="{name}" src="data:image/svg+xml;base64,{qr}">
<pre>{config}</pre>
</section>
"""


def qr_svg(text: str) -> bytes:
    img = qrcode.make(text, image_factory=SvgPathImage)
    buf = io.BytesIO()
    img.save(buf)
    return buf.getvalue()


def render_page(configs: Dict[str, Tuple[str, str]]) -> str:
    blocks = []
    for name, config in sorted(configs.values()):
        blocks.append(CONFIG_TEMPLATE.format(
            name=html.escape(name),
            file=html.escape(f"{name}.conf"),
            href=quote(config),
            qr=base64.b64encode(qr_svg(config)).decode("ascii"),
            config=html.escape(config),
        ))
    return PAGE_TEMPLATE.format(configs="".join(blocks))


class PageBuilder:
    """
    Pages statiques par groupe : <served_dir>/<guid>/index.html
    """

    def __init__(self, served_dir: Path):
        self.served_dir = Path(served_dir)

    def page_dir(self, guid: str) -> Path:
        return self.served_dir / guid

    def publish(self, guid: str, configs: Dict[str, Tuple[str, str]]) -> None:
        if not configs:
            self.remove(guid)
            return

        directory = self.page_dir(guid)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "index.html").write_text(render_page(configs), encoding="utf-8")
        logger.debug("Published %d configs to %s", len(configs), directory)

    def remove(self, guid: str) -> None:
        shutil.rmtree(self.page_dir(guid), ignore_errors=True)

    def clear(self) -> None:
        shutil.rmtree(self.served_dir, ignore_errors=True)
