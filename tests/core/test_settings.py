from src.applytrack.core.settings import (
    COVER_LETTER_REQUIRED,
    SEARCH_REQUIRED,
    Settings,
)


def _settings() -> Settings:
    return Settings.from_values(
        {
            " search api key ": "rapid-secret-1234",
            "Generative API Key": "short",
            "Search Keywords": "Data Analyst, python developer\nData analyst; SQL",
            "Resume Doc": '=HYPERLINK("https://docs.google.com/document/d/1ResumeDoc123/edit","My Resume")',
            "Cover Letter Folder": "https://drive.google.com/drive/folders/1FolderAbc123",
            "Notification Email": "me@example.com",
            "": "ignored",
        }
    )


def test_keys_are_case_and_space_insensitive():
    settings = _settings()
    assert settings.get("Search API Key") == "rapid-secret-1234"
    assert settings.get("SEARCH   API KEY") == "rapid-secret-1234"
    assert settings.get("Unknown", "fallback") == "fallback"


def test_keywords_split_and_dedupe():
    assert _settings().keywords() == ["Data Analyst", "python developer", "SQL"]


def test_text_link_and_drive_id_for_formula_values():
    settings = _settings()
    assert settings.text("Resume Doc") == "My Resume"
    assert settings.link("Resume Doc") == "https://docs.google.com/document/d/1ResumeDoc123/edit"
    assert settings.drive_id("Resume Doc") == "1ResumeDoc123"
    assert settings.drive_id("Cover Letter Folder") == "1FolderAbc123"


def test_missing_reports_blank_keys():
    settings = Settings.from_values({"Search API Key": "k", "Search Keywords": "  "})
    assert settings.missing(SEARCH_REQUIRED) == ["Search Keywords"]
    assert settings.missing(COVER_LETTER_REQUIRED) == list(COVER_LETTER_REQUIRED)
    assert _settings().missing(SEARCH_REQUIRED + COVER_LETTER_REQUIRED) == []


def test_masked_hides_secrets():
    masked = _settings().masked()
    assert masked["search api key"] == "***1234"
    assert masked["generative api key"] == "***"
    assert masked["notification email"] == "me@example.com"
