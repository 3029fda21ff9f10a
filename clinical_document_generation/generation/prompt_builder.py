"""
Prompt Builder - Clinical Document Generation Prompts

This module constructs the system instruction and user-turn content for
each document type. Prompts are designed to:
    1. Put patient identity on label-prefixed header lines that the
       persistence adapter can parse (PATIENT_NAME, CLIENT_ID, DOB)
    2. Run the safety screen and flag acute risk with the urgency marker
    3. Separate report sections with bracketed [SECTION_n] markers

Pipeline Position:
    UploadBatch → Orchestrator → [PromptBuilder] → DocumentGenerator → Persister
                                  ^^^^^^^^^^^^^^^
                                  You are here
"""

from typing import Dict, List, Optional, Sequence, Union

from clinical_document_generation.clients.llm_client import ContentPart
from clinical_document_generation.core.constants import (
    CLIENT_ID_LABEL,
    DOB_LABEL,
    PATIENT_NAME_LABEL,
    SAFETY_ALERT_HEADER,
    SAFETY_TRIGGER_TERMS,
)
from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.models import GenerationMetadata, UploadedFile


# =============================================================================
# STAGE 1: SHARED PROMPT BLOCKS
# =============================================================================

IDENTIFICATION_BLOCK = f"""### PATIENT IDENTIFICATION:
- Extract the full name. Write "{PATIENT_NAME_LABEL}: [Full Name]" on the very first line.
- If a client/chart identifier is present, write "{CLIENT_ID_LABEL}: [Identifier]" on the next line.
- If a date of birth is present, write "{DOB_LABEL}: [Date of Birth]" on the next line.
- Never invent identifiers that are not in the source material."""

SAFETY_BLOCK = f"""### CRITICAL SAFETY PROTOCOL:
Scan input for: {", ".join(f'"{term}"' for term in SAFETY_TRIGGER_TERMS)}.
- IF FOUND:
  1. Prepend "{SAFETY_ALERT_HEADER}" in bold text.
  2. Immediately list "**TRIGGER QUOTES:**" followed by the EXACT VERBATIM text from the source that caused the flag.
- IF NOT FOUND: State "Standard safety screening completed; no acute markers detected.\""""

TONE_BLOCK = (
    "TONE: Academic, professional, objective, and deeply empathetic. "
    "Use **Bold** for all headers and clinical labels."
)


# =============================================================================
# STAGE 2: DOCUMENT TYPE INSTRUCTIONS
# =============================================================================

INTAKE_SUMMARY_INSTRUCTION = f"""You are a world-class Senior Psychiatric Medical Scribe and Clinical Intake Specialist. Your objective is to transform raw intake data into an exhaustive, high-fidelity "Clinical Synthesis Report".

### CRITICAL CORE DIRECTIVE:
DO NOT SUMMARIZE. Avoid brevity. If the data is present, it must be detailed. If data is missing, note it as a clinical gap.

{IDENTIFICATION_BLOCK}

{SAFETY_BLOCK}

### OUTPUT STRUCTURE (MANDATORY MARKERS):
You MUST use these exact bracketed markers to separate sections:

[SECTION_1]
## 1. Comprehensive HPI and Clinical Inquiry
- **Longitudinal HPI**: Multi-paragraph narrative of onset, duration, frequency and severity of symptoms, with psychosocial stressors and triggering events.
- **Previous Interventions**: Past medications, therapies and self-help attempts, with reported efficacy or side effects.
- **High-Priority Clinical Inquiries**: 8-12 questions that clarify diagnostic ambiguity or explore missed clinical domains.

[SECTION_2]
## 2. Granular Review of Systems (ROS) & Psychiatric Phenomenology
- **Constitutional & Autonomic**, **Mood & Affective Domain**, **Cognitive & Executive Functioning**, **Sleep Architecture**, **Somatic & Musculoskeletal**.

[SECTION_3]
## 3. Biopsychosocial Synthesis & Clinical Impressions
- **Clinical Reasoning**, **Differential Considerations**, **Strengths & Protective Factors**.

[SECTION_4]
## 4. Multi-Modal Treatment Planning Facilitator
- **Pharmacological/Nutraceutical Considerations**, **Psychotherapeutic Recommendations**, **Lifestyle & Integrative Interventions**.
- **IF RISK WAS FLAGGED**: Include a dedicated "**SAFETY STRATEGY & STABILIZATION PLAN**".

{TONE_BLOCK}"""

TREATMENT_PLAN_INSTRUCTION = f"""You are a Senior Psychiatric Clinician drafting a formal, individualized Treatment Plan from the intake material and any prior documentation provided.

{IDENTIFICATION_BLOCK}

{SAFETY_BLOCK}

### OUTPUT STRUCTURE (MANDATORY MARKERS):

[SECTION_1]
## 1. Presenting Problems & Diagnostic Impressions
- Numbered problem list, each with the supporting evidence from the source.

[SECTION_2]
## 2. Goals & Measurable Objectives
- For each problem: a long-term goal and 2-4 short-term objectives that are specific, measurable and time-bound.

[SECTION_3]
## 3. Interventions
- Psychotherapeutic modalities, pharmacological considerations, care coordination and referrals, each linked to an objective.

[SECTION_4]
## 4. Frequency, Duration & Review
- Session frequency, expected duration, review date and discharge criteria.
- **IF RISK WAS FLAGGED**: Include a "**SAFETY STRATEGY & STABILIZATION PLAN**".

{TONE_BLOCK}"""

SESSION_NOTE_INSTRUCTION = f"""You are a Licensed Clinician writing a DARP progress note (Data, Assessment, Response, Plan) for ONE clinical session from the material provided (transcripts, audio, handwritten or typed notes).

{IDENTIFICATION_BLOCK}

{SAFETY_BLOCK}

### OUTPUT STRUCTURE (MANDATORY MARKERS):

[SECTION_1]
## D - Data
- Objective and subjective information from the session: presenting concerns, quotes, observed affect and behavior, mental status.

[SECTION_2]
## A - Assessment
- Clinical interpretation of the data, progress toward treatment-plan goals, risk assessment.

[SECTION_3]
## R - Response
- Interventions used in session and the client's response to them.

[SECTION_4]
## P - Plan
- Homework, next session focus, referrals, and the date of the next appointment if stated.

Keep the note concise and audit-ready; do not pad with content that is not in the source.

{TONE_BLOCK}"""

SYSTEM_INSTRUCTIONS: Dict[DocumentType, str] = {
    DocumentType.INTAKE_SUMMARY: INTAKE_SUMMARY_INSTRUCTION,
    DocumentType.TREATMENT_PLAN: TREATMENT_PLAN_INSTRUCTION,
    DocumentType.SESSION_NOTE: SESSION_NOTE_INSTRUCTION,
}

# User-turn instruction that follows file payloads
FILE_ANALYSIS_INSTRUCTIONS: Dict[DocumentType, str] = {
    DocumentType.INTAKE_SUMMARY: (
        "Provide an exhaustive, high-fidelity clinical analysis of this intake. "
        "Do not summarize; include every possible nuance."
    ),
    DocumentType.TREATMENT_PLAN: (
        "Draft a complete treatment plan grounded in the attached documentation."
    ),
    DocumentType.SESSION_NOTE: (
        "Write the DARP note for the session documented in the attached material."
    ),
}


# =============================================================================
# STAGE 3: PROMPT BUILDER CLASS
# =============================================================================


class PromptBuilder:
    """
    Constructs the request for one document generation call.

    What it does:
        Selects the system instruction for the document type and lays out
        the user turn: file payloads first, then the analysis instruction
        and any metadata lines. Plain-text input is sent as-is with the
        metadata appended.

    Example:
        >>> builder = PromptBuilder()
        >>> system = builder.get_system_instruction(DocumentType.SESSION_NOTE)
        >>> parts = builder.build_parts(files, DocumentType.SESSION_NOTE,
        ...                             GenerationMetadata(date_of_service="2024-05-01"))
    """

    def get_system_instruction(self, document_type: DocumentType) -> str:
        return SYSTEM_INSTRUCTIONS[document_type]

    def build_metadata_block(self, metadata: Optional[GenerationMetadata]) -> str:
        """Render metadata hints as labelled lines ("" when there are none)."""
        if metadata is None or metadata.is_empty:
            return ""

        lines = []
        if metadata.client_id:
            lines.append(f"Client ID: {metadata.client_id}")
        if metadata.date_of_service:
            lines.append(f"Date of service: {metadata.date_of_service}")
        return "\n".join(lines)

    def build_parts(
        self,
        content: Union[str, Sequence[UploadedFile]],
        document_type: DocumentType,
        metadata: Optional[GenerationMetadata] = None,
    ) -> List[ContentPart]:
        """
        Build the ordered user-turn parts.

        Args:
            content: Plain text, or the unit's files in upload order
            document_type: Selects the analysis instruction
            metadata: Optional client id / date of service hints

        Returns:
            Parts ready for LLMClientProtocol.generate()
        """
        metadata_block = self.build_metadata_block(metadata)

        if isinstance(content, str):
            parts: List[ContentPart] = [content]
            if metadata_block:
                parts.append(metadata_block)
            return parts

        instruction = FILE_ANALYSIS_INSTRUCTIONS[document_type]
        if metadata_block:
            instruction = f"{instruction}\n\n{metadata_block}"
        return [*content, instruction]
