"""Tests for best-effort parsing of generated documents."""

from clinical_document_generation.parsing import (
    extract_initials,
    extract_patient_identity,
    extract_trigger_quotes,
    guess_patient_from_file_name,
    is_urgent,
    normalize_name,
    split_full_name,
    split_report_sections,
)


class TestPatientIdentity:
    """Tests for identity extraction."""

    def test_all_labels(self):
        """Test name, client id and DOB are read from header lines."""
        identity = extract_patient_identity(
            "PATIENT_NAME: Jane Doe\nCLIENT_ID: C-100\nDOB: 1990-01-01\n\nBody"
        )
        assert identity.name == "Jane Doe"
        assert identity.client_id == "C-100"
        assert identity.date_of_birth == "1990-01-01"

    def test_markdown_emphasis_stripped(self):
        """Test bold labels and values are cleaned."""
        identity = extract_patient_identity("**PATIENT_NAME:** **Jane Doe**\n**CLIENT_ID**: AB_12")
        assert identity.name == "Jane Doe"
        assert identity.client_id == "AB_12"

    def test_missing_labels_fall_back(self):
        """Test text without labels gives the unknown patient."""
        identity = extract_patient_identity("No header here.")
        assert identity.name == "Unknown Patient"
        assert identity.client_id is None
        assert identity.date_of_birth is None

    def test_empty_name_falls_back(self):
        """Test an empty PATIENT_NAME value is treated as missing."""
        assert extract_patient_identity("PATIENT_NAME:   \nBody").name == "Unknown Patient"


class TestNames:
    """Tests for name helpers."""

    def test_split_two_tokens(self):
        """Test last token is the last name."""
        assert split_full_name("Jane Doe") == ("Jane", "Doe")

    def test_split_middle_name(self):
        """Test middle names stay with the first name."""
        assert split_full_name("Mary Ann Smith") == ("Mary Ann", "Smith")

    def test_split_single_token(self):
        """Test a single token is a first name only."""
        assert split_full_name("Cher") == ("Cher", "")

    def test_initials(self):
        """Test initials with and without a last name."""
        assert extract_initials("Jane", "Doe") == "JD"
        assert extract_initials("Cher", "") == "CX"

    def test_normalize_name(self):
        """Test case and whitespace are ignored."""
        assert normalize_name("  JANE   doe ") == normalize_name("Jane Doe")


class TestSafetyMarkers:
    """Tests for urgency detection."""

    def test_urgent_marker(self):
        """Test the alert glyph marks a report urgent."""
        assert is_urgent("**\U0001F6A8 URGENT SAFETY ALERT: ACUTE RISK DETECTED**")
        assert not is_urgent("PATIENT_NAME: Jane Doe")

    def test_trigger_quotes(self):
        """Test quotes are read up to the next section marker."""
        text = (
            "**\U0001F6A8 URGENT SAFETY ALERT: ACUTE RISK DETECTED**\n"
            'TRIGGER QUOTES: "I want to die"\n'
            "[SECTION_1]\nReport"
        )
        assert extract_trigger_quotes(text) == '"I want to die"'

    def test_no_trigger_quotes(self):
        """Test None when there is no alert."""
        assert extract_trigger_quotes("PATIENT_NAME: Jane Doe") is None


class TestSections:
    """Tests for section splitting."""

    def test_split_sections(self):
        """Test bracketed markers split the report."""
        text = (
            "PATIENT_NAME: Jane Doe\n"
            "[SECTION_1]\nA\n[SECTION_2]\nB\n[SECTION_3]\nC\n[SECTION_4]\nD"
        )
        sections = split_report_sections(text)
        assert sections.preamble == "PATIENT_NAME: Jane Doe"
        assert sections.clinical_report == "A"
        assert sections.treatment_plan == "D"
        assert sections.has_sections

    def test_no_markers(self):
        """Test text without markers is all preamble."""
        sections = split_report_sections("Just text")
        assert sections.preamble == "Just text"
        assert not sections.has_sections


class TestFileNameGuess:
    """Tests for file name heuristics."""

    def test_hyphenated_name(self):
        """Test First-Last file names."""
        guess = guess_patient_from_file_name("Jane-Doe.pdf")
        assert guess.first_initial == "J"
        assert guess.last_name == "Doe"
        assert guess.folder_name == "Doe_J"

    def test_empty_name(self):
        """Test a name with no usable tokens."""
        guess = guess_patient_from_file_name(".pdf")
        assert guess.folder_name == "Unknown_X"
