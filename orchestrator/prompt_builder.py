"""
Prompt templates for the four tasks.

Every template spells out the JSON shape it expects back, because in
grounded-search mode the backend cannot enforce a schema and the prose is the
only contract the model sees. Bounding boxes are always
[ymin, xmin, ymax, xmax] on a 0-1000 integer scale, independent of the
pixel size of the uploaded image.
"""

from models.task import PromptBundle, TaskKind, TaskRequest

FULL_SCAN = "audit_full_scan"
DOCUMENT_REASONING = "audit_document_reasoning"
GROUNDED_SEARCH = "audit_grounded_search"

BOUNDING_BOX_RULE = (
    "Bounding boxes are four numbers [ymin, xmin, ymax, xmax] normalized to a 0-1000 "
    "integer scale, regardless of the actual image resolution."
)

_FENCE = "```json ... ```"

FULL_SCAN_SHAPE = """{
  "summary": "A high-level summary of the entire schematic audit, listing the main parts found and the overall health of the design.",
  "missingDatasheet": false,
  "sections": [
    // Create one section PER MAIN COMPONENT found.
    {
      "title": "[Part Number] Verification",
      "status": "pass" | "fail" | "warning" | "info",
      "content": "Details about power, connections, and any errors found for this specific part.",
      "boundingBox": [ymin, xmin, ymax, xmax], // 0-1000 scale. Required if status is fail/warning.
      "datasheetImageUri": "https://...", // URL to an image of the pinout found online
      "correctData": "Markdown table of the correct pinout or specs"
    }
  ],
  "suggestedFixes": ["Global list of fix recommendations"]
}"""

AUDIT_SHAPE = """{
  "summary": "string",
  "missingDatasheet": boolean, // true if the part could not be matched or no reliable data exists
  "sections": [
    {
      "title": "string",
      "status": "pass" | "fail" | "warning" | "info",
      "content": "string",
      "boundingBox": [ymin, xmin, ymax, xmax], // 0-1000 scale
      "datasheetImageUri": "string", // URL of a pinout image, if any
      "correctData": "string" // Markdown table of the correct data
    }
  ],
  "suggestedFixes": ["string"]
}"""

BOM_SHAPE = """{
  "items": [
    {
      "partNumber": "string",
      "description": "string",
      "manufacturer": "string",
      "quantity": number,
      "designators": "string",
      "estimatedUnitPrice": number,
      "totalPrice": number,
      "cadLinks": {
        "model3d": "url string (The best link you found for 3D or the Product Page)",
        "footprint": "url string (Optional, if distinct from model3d)",
        "symbol": "url string (Optional)"
      }
    }
  ],
  "totalEstimatedCost": number,
  "currency": "USD"
}"""

PART_SEARCH_SHAPE = """{
  "partNumber": "string",
  "manufacturer": "string",
  "description": "string",
  "imageUri": "url string",
  "specs": { "Key": "Value", "Vmax": "5.5V" },
  "datasheetUri": "url string",
  "cadLinks": {
    "model3d": "url string (Prioritize Landing Page)",
    "footprint": "url string",
    "provider": "CAD provider name"
  },
  "pricing": [
    { "distributor": "DigiKey", "price": "$1.20", "stock": "1000", "link": "url" }
  ],
  "alternatives": ["string", "string"]
}"""

FIRMWARE_SHAPE = """{
  "filename": "main.c", // or main.cpp, main.py
  "language": "c", // or cpp, python
  "architecture": "STM32 HAL", // or Arduino, ESP-IDF
  "description": "Short explanation of what the code does.",
  "code": "Full source code string (escaped correctly)"
}"""


def _quoted(text: str) -> str:
    return f'"{text}"' if text else '"(none provided)"'


def select_audit_template(request: TaskRequest) -> str:
    """Full scan without a target; otherwise the datasheet decides between the other two."""
    if not request.has_target_identifier:
        return FULL_SCAN
    if request.has_supporting_document:
        return DOCUMENT_REASONING
    return GROUNDED_SEARCH


def _full_scan_prompt(request: TaskRequest) -> str:
    return f"""
You are a Senior Electrical Engineer and Hardware Auditor.

Inputs:
1. A Schematic Diagram (PDF or Image).
2. User Notes: {_quoted(request.notes)}

Task:
Perform a comprehensive audit of the provided schematic.
This is a multi-step process. Execute it page by page, in order.

1. **Component Extraction**: Scan the schematic and identify the MAIN Integrated Circuits (ICs), Microcontrollers, Processors, and complex chips.
   - Ignore passive components (resistors, capacitors) unless they are critical decoupling or sensing elements attached to a main IC.

2. **Online Verification (Auto-Search)**:
   - For EACH identified main component, use Google Search to find its datasheet or pinout data (prioritize DigiKey, Mouser, Manufacturer PDFs).
   - Verify that the schematic symbol matches the real-world component (Pin count, Pin names).
   - FIND an image URL of the part's pinout or symbol if possible.

3. **Circuit Audit**:
   - Verify Power Connections (VCC/GND/VDD/VSS). Are they connected?
   - Verify Decoupling. Are capacitors present near power pins?
   - Verify Control Pins (Reset, Enable, Boot0, etc.). Are they pulled up/down correctly?
   - Check for any floating inputs that should be tied.
   - If you find an error, identify the spatial location (Bounding Box) on the schematic.
   - {BOUNDING_BOX_RULE}

**CRITICAL OUTPUT INSTRUCTION:**
Return the result as a valid JSON object strictly following this structure inside a markdown code block ({_FENCE}):
{FULL_SCAN_SHAPE}
"""


def _document_reasoning_prompt(request: TaskRequest) -> str:
    part = request.target_part
    return f"""
You are a Senior Electrical Engineer and Hardware Design Auditor.
Your task is to verify an electronic schematic against a component datasheet.

Inputs:
1. Schematic Diagram (Image/PDF).
2. The Datasheet (Document/Image).
3. Target Part Number: {part}
4. User notes: {_quoted(request.notes)}

Task:
Scan the provided datasheet document to find the pinout configuration, absolute maximum ratings, and recommended operating conditions for the part "{part}".
Then, analyze the schematic connections in the provided file.

Verify the following:
- Pinout Validation: Do the schematic pin numbers and labels match the datasheet?
- Power Connections: Are VCC/GND connected correctly?
- Decoupling: Are capacitors present as recommended by the datasheet?
- Unused Pins: Are specific pins (like Reset, Enable, NC) handled correctly?
- If you find an ERROR, you MUST provide the 'boundingBox' [ymin, xmin, ymax, xmax] for the schematic error and extract the 'correctData' from the datasheet.
- {BOUNDING_BOX_RULE}

Output Format: JSON with this structure:
{AUDIT_SHAPE}
"""


def _grounded_search_prompt(request: TaskRequest) -> str:
    part = request.target_part
    return f"""
You are a Senior Electrical Engineer. The user has provided a schematic but NOT the datasheet.

Inputs:
1. Schematic Diagram (Image/PDF).
2. Target Part Number: "{part}" (CRITICAL).
3. User notes: {_quoted(request.notes)}

Task:
1. Use Google Search to find the pinout, datasheet, or symbol information for the part number "{part}".
   - Prioritize reliable distributors like **DigiKey**, **Mouser**, **Farnell**, or the manufacturer's official PDF.
   - Find an image URL of the component's official pinout or symbol.

2. **VERIFICATION STEP (CRITICAL):**
   - Compare the pinout found online with the symbol shown in the schematic image.
   - Check: Does the pin count match? Do the visible pin labels match?
   - IF the part found online is significantly different from the schematic symbol (e.g., schematic shows 8 pins, datasheet has 14, or labels don't match), assume the search found the wrong variant or the schematic is using a custom symbol.
   - IN CASE OF MISMATCH or if you cannot find reliable data: Set "missingDatasheet" to true in the JSON response and stop. Do not perform any further audit work.

3. If the data matches:
   - Compare the schematic image against the pinout information you found.
   - Verify: Power pins (VCC/GND), Signal names, Floating pins, Decoupling.
   - If Error: Calculate boundingBox [ymin, xmin, ymax, xmax].
   - {BOUNDING_BOX_RULE}

**CRITICAL OUTPUT INSTRUCTION:**
You must return the result as a valid JSON object strictly following this structure inside a markdown code block ({_FENCE}):
{AUDIT_SHAPE}
"""


_AUDIT_TEMPLATES = {
    FULL_SCAN: _full_scan_prompt,
    DOCUMENT_REASONING: _document_reasoning_prompt,
    GROUNDED_SEARCH: _grounded_search_prompt,
}


def _bom_prompt(request: TaskRequest) -> str:
    return f"""
You are a Manufacturing Engineer and Procurement Specialist.

Input: An electronic schematic image/PDF.

Task:
1. **Extract BOM**: Identify EVERY component in the schematic.
   - Group by unique Part Number / Value.
   - List the Designators (e.g., R1, R2, R3).
   - Count the total quantity for each.

2. **Cost Estimation**:
   - Use Google Search to find the *average unit price* for each component (in USD).
   - Source prices from major distributors (DigiKey, Mouser, LCSC).

3. **CAD & Footprints Discovery**:
   - Your goal is to find a URL where the user can download the 3D Model (STEP/IGES) or PCB Footprint.
   - **Prioritize "Landing Pages"**: It is often hard to find a direct .zip or .step link. Instead, find the **Search Result URL** or **Product Page URL** on major repositories.
   - Look for URLs on: **SnapEDA**, **UltraLibrarian**, **ComponentSearchEngine**, **Octopart**, **DigiKey (EDA/CAD Models section)**.
   - Example valid links:
     - "https://www.snapeda.com/parts/STM32F103/STMicroelectronics/view-part/"
     - "https://www.ultralibrarian.com/search?query=STM32F103"

Output Format:
Return a VALID JSON object in a markdown code block ({_FENCE}).
Structure:
{BOM_SHAPE}
"""


def _part_search_prompt(request: TaskRequest) -> str:
    wanted = []
    if request.want_datasheet:
        wanted.append("- The Datasheet PDF URL.")
    if request.want_cad:
        wanted.append("- 3D CAD Models and Footprints (SnapEDA, UltraLibrarian, etc).")
    if request.want_pricing:
        wanted.append("- Pricing and Stock from major distributors (DigiKey, Mouser).")
    extras = "\n".join(wanted) if wanted else "- A general overview only."

    return f"""
You are an Electronic Components Procurement Assistant.

Task: Find detailed information for the component: "{request.query}".

The user is specifically asking for:
{extras}

1. **Overview**: Find the Manufacturer and a short technical description.
2. **Specs**: Extract key technical specs (e.g., Supply Voltage, Package, Current, Pin Count).
3. **Image**: Find a URL for an image of the part.
4. **Alternatives**: Suggest 2-3 compatible replacement part numbers.

Output strictly valid JSON in a markdown code block ({_FENCE}).
Structure:
{PART_SEARCH_SHAPE}
"""


def _firmware_prompt(request: TaskRequest) -> str:
    return f"""
You are an Embedded Systems Engineer.

Input: An electronic schematic image/PDF.
User Notes: {_quoted(request.notes)}
User Defined Pin Mapping: {_quoted(request.pin_mapping)}

Task:
1. **Analyze Schematic & Mapping**:
   - FIRST, check the "User Defined Pin Mapping" provided above. Treat these connections as the absolute truth.
   - They OVERRIDE any connection you infer visually from the schematic, even if the drawing appears to disagree.
   - SECOND, for any connections not specified by the user, analyze the schematic image to find how the Microcontroller is connected to peripherals (LEDs, Sensors, Buttons).

2. **Generate Firmware**:
   - Write a complete, ready-to-compile driver or main file to initialize these peripherals.
   - Use the most common framework for the identified MCU (e.g., HAL for STM32, Arduino for AVR/ESP32).
   - If no MCU is clear, assume Arduino C++ format.
   - **IMPORTANT**: Annotate EVERY connection with a comment stating its origin: "User Mapping" or "Schematic Analysis".

Output strictly valid JSON with this structure:
{FIRMWARE_SHAPE}
"""


_TASK_TEMPLATES = {
    TaskKind.BOM: _bom_prompt,
    TaskKind.PART_SEARCH: _part_search_prompt,
    TaskKind.FIRMWARE: _firmware_prompt,
}


def build_prompt(request: TaskRequest) -> PromptBundle:
    """Build the instruction text and attach the request's files in order."""
    if request.kind is TaskKind.AUDIT:
        template = select_audit_template(request)
        text = _AUDIT_TEMPLATES[template](request)
    else:
        template = request.kind.value
        text = _TASK_TEMPLATES[request.kind](request)

    return PromptBundle(
        instruction_text=text.strip(),
        attachments=request.attachments,
        template=template,
    )
