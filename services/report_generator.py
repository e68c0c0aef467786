# services/report_generator.py

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from typing import Iterable, List, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from core.config import settings
from core.errors import ValidationFailure
from core.logging_config import get_logger
from core.permissions import AREA_CAPABILITIES
from core.roles import list_roles
from models.user import UserRecord


logger = get_logger("reports")

HEADER_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("FONTSIZE", (0, 0), (-1, -1), 8),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
]


# ============================================================
# Snapshot pagination
# ============================================================
@dataclass(frozen=True)
class PageSlice:
    """One page worth of a tall image, in source pixels."""
    index: int
    source_y: int
    source_height: int
    draw_height: float   # points on the page


def compute_page_slices(
    image_width: int,
    image_height: int,
    page: Tuple[float, float] = A4,
    margin_mm: Optional[float] = None,
) -> List[PageSlice]:
    """
    Split an image scaled to the page's content width into page-sized slices.

    The image is scaled so its width fills the content box; the page count is
    ceil(scaled height / content height). Every slice but the last is a full
    content box tall. Slice edges are whole pixels, so a trailing remainder
    under half a pixel yields no page.
    """
    if margin_mm is None:
        margin_mm = settings.REPORT_MARGIN_MM

    if not isinstance(image_width, int) or not isinstance(image_height, int):
        raise ValidationFailure("Image dimensions must be integers", field="image")
    if image_width <= 0 or image_height <= 0:
        raise ValidationFailure(
            f"Invalid image dimensions {image_width}x{image_height}", field="image"
        )

    page_width, page_height = page
    margin = margin_mm * mm
    content_width = page_width - 2 * margin
    content_height = page_height - 2 * margin
    if content_width <= 0 or content_height <= 0:
        raise ValidationFailure("Margin leaves no printable area", field="margin_mm")

    scale = content_width / image_width
    scaled_height = image_height * scale
    # round() keeps an exact fit from spilling onto an extra page
    pages = max(1, math.ceil(round(scaled_height / content_height, 9)))
    pixels_per_page = content_height / scale

    slices = []
    for index in range(pages):
        top = int(round(index * pixels_per_page))
        bottom = min(image_height, int(round((index + 1) * pixels_per_page)))
        height = bottom - top
        if height <= 0:
            break
        slices.append(PageSlice(index, top, height, height * scale))

    return slices


def render_snapshot_pdf(
    png_bytes: bytes,
    page: Tuple[float, float] = A4,
    margin_mm: Optional[float] = None,
) -> bytes:
    """Paginated PDF of a rendered view region, one slice per page."""
    if not png_bytes:
        raise ValidationFailure("Snapshot image is empty", field="image")

    try:
        image = Image.open(BytesIO(png_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationFailure("Snapshot is not a readable image", field="image") from e

    if margin_mm is None:
        margin_mm = settings.REPORT_MARGIN_MM

    slices = compute_page_slices(image.width, image.height, page, margin_mm)
    margin = margin_mm * mm
    page_width, page_height = page
    content_width = page_width - 2 * margin

    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=page)
    for piece in slices:
        crop = image.crop((0, piece.source_y, image.width, piece.source_y + piece.source_height))
        # Top-aligned inside the margin box
        y = page_height - margin - piece.draw_height
        pdf.drawImage(ImageReader(crop), margin, y, width=content_width, height=piece.draw_height)
        pdf.showPage()
    pdf.save()

    logger.info(f"Snapshot PDF rendered: {image.width}x{image.height}px, {len(slices)} page(s)")
    return buffer.getvalue()


# ============================================================
# Tabular reports
# ============================================================
def _build(story: list, pagesize=A4) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=pagesize)
    doc.build(story)
    return buffer.getvalue()


def _footer(styles) -> Paragraph:
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    return Paragraph(f"Generated: {generated}", styles["Normal"])


def render_permission_matrix_pdf() -> bytes:
    """Role x capability grid for every area, read from the role catalog."""
    styles = getSampleStyleSheet()
    roles = list_roles()
    story = [
        Paragraph("Role Permission Matrix", styles["Heading1"]),
        Spacer(1, 0.2 * inch),
    ]

    summary = [["Role", "Permissions", "Areas"]]
    for config in roles:
        summary.append([config.label, str(config.total_permissions), str(config.allowed_areas)])
    table = Table(summary)
    table.setStyle(TableStyle(HEADER_STYLE))
    story += [table, Spacer(1, 0.3 * inch)]

    for area, capabilities in AREA_CAPABILITIES.items():
        story.append(Paragraph(area.capitalize(), styles["Heading2"]))
        rows = [["Capability"] + [config.label for config in roles]]
        for capability in capabilities:
            rows.append(
                [capability.replace("_", " ")]
                + ["Yes" if config.permissions[area][capability] else "-" for config in roles]
            )
        table = Table(rows, repeatRows=1)
        table.setStyle(TableStyle(HEADER_STYLE))
        story += [table, Spacer(1, 0.2 * inch)]

    story.append(_footer(styles))
    return _build(story, pagesize=landscape(A4))


def render_users_pdf(users: Iterable[UserRecord]) -> bytes:
    styles = getSampleStyleSheet()
    users = list(users)
    story = [
        Paragraph("User Directory", styles["Heading1"]),
        Paragraph(f"{len(users)} user(s)", styles["Normal"]),
        Spacer(1, 0.2 * inch),
    ]

    rows = [["Name", "Email", "Phone", "Role", "Status", "Location"]]
    for user in users:
        location = user.facility_name or user.district or user.region or ""
        rows.append([
            user.name,
            user.email or "",
            user.phone,
            user.role,
            user.status.value,
            location,
        ])
    table = Table(rows, repeatRows=1)
    table.setStyle(TableStyle(HEADER_STYLE))
    story += [table, Spacer(1, 0.3 * inch), _footer(styles)]

    return _build(story, pagesize=landscape(A4))
