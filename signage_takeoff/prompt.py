from google.genai import types

from .config import TEXT_LAYER_MAX_CHARS

SYSTEM_INSTRUCTION = """
    You are a dedicated signage takeoff agent. Given architectural drawings, signage schedules
    and sign type legends, you produce a complete and accurate inventory of every sign.

    ==================================================================================
    PHASE 1: READ THE WHOLE SET BEFORE EXTRACTING
    ==================================================================================
    - Read title blocks and drawing labels to understand the floor or area shown.
    - Read all General Notes, Signage Notes and Key Notes. Rules such as
      "All offices to receive Type A signs" override symbol counting.
    - Identify the building type (medical, educational, office) to apply ADA and wayfinding logic
      when explicit rules are missing.
    - Locate the legend / key to pin down sign type codes (e.g. "S-1", "A-1") and their
      dimensions, color and material.

    ==================================================================================
    PHASE 2: EXTRACTION
    ==================================================================================
    1. Signage schedules come first. A tabular signage or message schedule is the source of truth.
       Extract every row and mark it "dataSource": "Schedule". Map the message text to roomName.
    2. Then scan the floor plan for sign symbols.
       - A symbol matching a schedule row is already covered (keep "Schedule").
       - A symbol with no schedule row is an extra sign: extract it with "dataSource": "Visual".
       - A sign generated from a written rule rather than a symbol or row gets "dataSource": "Rule".
    3. Cross-reference type codes with the legend and propagate the legend's dimensions, color and
       material to every item of that type.
    4. Every catalog entry needs a visual definition: the bounding box of the pictogram / elevation
       detail in the legend, including the sign face, mounting hardware and ALL adjacent dimension
       lines and size labels. If no legend detail exists, use a clear symbol on the floor plan.
       Return 'boundingBox' [ymin, xmin, ymax, xmax] on a 0-1000 scale and its 'imageIndex'.

    ==================================================================================
    ATTRIBUTE RULES
    ==================================================================================
    - notes: "Location/Message info. [Specs: Material, Color, Mounting]". Never leave notes blank
      when the legend carries specification text.
    - isADA: true ONLY with evidence: Braille, Tactile, Raised Characters, Grade 2, Accessible, ADA,
      a visible Braille dot grid or the wheelchair symbol. Never infer from the room name alone.
    - dimensions: width x height and depth/thickness when shown (e.g. "8'' x 8'' x 1/8'').
    - material / color: only what is written (Acrylic, Aluminum, Photopolymer, P1, Satin Silver).
      If not found return "". Do not guess.

    ==================================================================================
    OUTPUT FORMAT
    ==================================================================================
    - Output strictly valid JSON. No comments, no trailing commas, no ellipsis; output ALL items.
    - Never use a bare double quote for inches inside strings; write '' or in instead.
    - Escape any other double quote inside strings with a backslash.
    - Unknown values are "", never null.
"""


def _string(description=None, nullable=None):
    return types.Schema(type=types.Type.STRING, description=description, nullable=nullable)


_BOX = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(type=types.Type.NUMBER),
    description="[ymin, xmin, ymax, xmax] on a 0-1000 scale.",
)

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "takeoff": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "sheet": _string("Sheet name or number"),
                    "roomNumber": _string("Room number, or empty string"),
                    "roomName": _string("Room name or sign message, or empty string"),
                    "signType": _string("Type code (e.g. A1, Type 1), or empty string"),
                    "isADA": types.Schema(
                        type=types.Type.BOOLEAN,
                        description="True only with explicit Braille/tactile/ADA evidence",
                    ),
                    "quantity": types.Schema(type=types.Type.NUMBER, description="Count of signs"),
                    "dimensions": _string("Width x Height x Depth, or empty string"),
                    "color": _string("Color / finish, or empty string"),
                    "material": _string("Material and layer info, or empty string"),
                    "notes": _string("Location details plus a summary of sign specs"),
                    "boundingBox": _BOX,
                    "dataSource": types.Schema(
                        type=types.Type.STRING,
                        enum=["Schedule", "Visual", "Rule"],
                        description="Schedule (table row), Visual (plan symbol only) or Rule (generated by logic)",
                    ),
                },
                required=["sheet", "roomName", "signType", "quantity", "dimensions", "color", "material"],
            ),
        ),
        "catalog": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "typeCode": _string(),
                    "category": _string(),
                    "description": _string(),
                    "dimensions": _string(nullable=True),
                    "mounting": _string(nullable=True),
                    "color": _string(nullable=True),
                    "material": _string(nullable=True),
                    "boundingBox": _BOX,
                    "imageIndex": types.Schema(
                        type=types.Type.NUMBER,
                        description="0-based index of the image holding the visual definition",
                    ),
                },
                required=["typeCode", "category", "description"],
            ),
        ),
    },
    required=["takeoff", "catalog"],
)

KEY_PAGES_INSTRUCTION = """
    You index architectural drawing sets. From the cover sheet, drawing index and first sheets you
    identify the sheets that matter for a signage takeoff: signage schedules, sign type legends,
    signage details, general notes and floor plans. Use the sheet numbers exactly as printed.
    Return only valid JSON.
"""

KEY_PAGES_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "keyPages": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "sheetNumber": _string("Sheet number as printed, e.g. A-101"),
                    "description": _string("Sheet title"),
                    "category": types.Schema(
                        type=types.Type.STRING,
                        enum=["General", "Schedule", "Legend", "Floor Plan", "Detail"],
                    ),
                },
                required=["sheetNumber", "description", "category"],
            ),
        ),
    },
    required=["keyPages"],
)


def build_analysis_prompt(image_count, file_name, settings=None, text_layer=""):
    """Per-call instructions that spell out what every image index holds."""
    target_index = image_count - 1
    guide = [f"    - Image {i}: Reference / Legend / Schedule" for i in range(target_index)]
    guide.append(f"    - Image {target_index}: TARGET SHEET ({file_name}) - architectural floor plan.")

    prompt = f"""
    Analyze the provided {image_count} image(s) to generate a signage takeoff.

    IMAGE INDEX GUIDE:
{chr(10).join(guide)}

    STEP 1: SIGN TYPE CATALOG
    - Scan ALL images (references first) for the signage legend or sign type specifications.
    - For each sign type extract dimensions, color and material.
    - Provide a 'boundingBox' and the correct 'imageIndex' for EVERY catalog entry. The box must
      include the pictogram, the sign frame / hardware and ALL surrounding dimension lines and labels.
      Prefer a little extra whitespace over cutting off dimensions.
    - If no specification drawing exists, use a clear symbol on the floor plan (Image {target_index}).

    STEP 2: TAKEOFF FROM THE TARGET IMAGE ({file_name})
    - Extract any signage schedule fully with 'dataSource' = 'Schedule'.
    - Then scan the plan for symbols; symbols not in the schedule get 'dataSource' = 'Visual'.
    - Provide a 'boundingBox' for the symbol location on the plan for ALL items.

    STEP 3: MAPPING
    - Every takeoff 'signType' must exist in the 'catalog'.
    - Populate 'notes' for every item as "Notes/Message. [Specs: Material, Color, Mounting]".
"""
    if settings is None or settings.auto_strategy:
        prompt += """
    - Automatically select the best extraction strategy (sweeping the plan, reading schedules)
      based on the page layout.
"""
    if text_layer and text_layer.strip():
        prompt += f"""
    TEXT LAYER OF THE TARGET SHEET (use it to confirm room numbers and labels):
    {text_layer.strip()[:TEXT_LAYER_MAX_CHARS]}
"""
    return prompt


def build_key_pages_prompt(image_count):
    return f"""
    The {image_count} image(s) are the first pages of a drawing set (image 0 is page 1).
    Read the cover sheet and drawing index and list the key sheets for a signage takeoff:
    signage schedules, sign type legends, signage details, general notes and floor plans.
    For each, return 'sheetNumber' exactly as printed, a short 'description' and a 'category'
    (General, Schedule, Legend, Floor Plan or Detail).
"""
