"""Tests for autoresponder/auth.py"""

from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from autoresponder.auth import CredentialProvider, build_gmail_service
from autoresponder.errors import CredentialsError

SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


@pytest.fixture
def token_file(tmp_path):
    path = tmp_path / "token.json"
    path.write_text("{}")
    return path


def provider_for(tmp_path, token_file, credentials_file, allow_interactive=False):
    return CredentialProvider(SCOPES, str(token_file), str(credentials_file), allow_interactive)


def test_missing_token_fails_fast(tmp_path, credentials_file):
    provider = provider_for(tmp_path, tmp_path / "absent.json", credentials_file)

    with pytest.raises(CredentialsError):
        provider.get_credentials()


def test_valid_token_is_reused(tmp_path, token_file, credentials_file):
    creds = MagicMock(valid=True)
    with patch("autoresponder.auth.Credentials.from_authorized_user_file", return_value=creds) as load:
        provider = provider_for(tmp_path, token_file, credentials_file)
        assert provider.get_credentials() is creds
        assert provider.get_credentials() is creds

    load.assert_called_once_with(str(token_file), SCOPES)


def test_expired_token_is_refreshed_and_saved(tmp_path, token_file, credentials_file):
    creds = MagicMock(valid=False, expired=True, refresh_token="r")
    creds.to_json.return_value = '{"token": "fresh"}'

    with patch("autoresponder.auth.Credentials.from_authorized_user_file", return_value=creds):
        provider = provider_for(tmp_path, token_file, credentials_file)
        assert provider.get_credentials() is creds

    creds.refresh.assert_called_once()
    assert token_file.read_text() == '{"token": "fresh"}'


def test_failed_refresh_is_fatal_without_consent(tmp_path, token_file, credentials_file):
    creds = MagicMock(valid=False, expired=True, refresh_token="r")
    creds.refresh.side_effect = RefreshError("invalid_grant")

    with patch("autoresponder.auth.Credentials.from_authorized_user_file", return_value=creds):
        provider = provider_for(tmp_path, token_file, credentials_file)
        with pytest.raises(CredentialsError):
            provider.get_credentials()


def test_unreadable_token_is_ignored(tmp_path, token_file, credentials_file):
    with patch("autoresponder.auth.Credentials.from_authorized_user_file", side_effect=ValueError("bad")):
        provider = provider_for(tmp_path, token_file, credentials_file)
        with pytest.raises(CredentialsError):
            provider.get_credentials()


def test_interactive_flow_saves_token(tmp_path, credentials_file):
    token_path = tmp_path / "token.json"
    creds = MagicMock()
    creds.to_json.return_value = '{"token": "new"}'
    flow = MagicMock()
    flow.run_local_server.return_value = creds

    with patch("autoresponder.auth.InstalledAppFlow.from_client_secrets_file", return_value=flow):
        provider = provider_for(tmp_path, token_path, credentials_file, allow_interactive=True)
        assert provider.get_credentials() is creds

    assert token_path.read_text() == '{"token": "new"}'


def test_declined_consent_is_a_credentials_error(tmp_path, credentials_file):
    flow = MagicMock()
    flow.run_local_server.side_effect = RuntimeError("access_denied")

    with patch("autoresponder.auth.InstalledAppFlow.from_client_secrets_file", return_value=flow):
        provider = provider_for(tmp_path, tmp_path / "token.json", credentials_file, allow_interactive=True)
        with pytest.raises(CredentialsError):
            provider.get_credentials()


def test_interactive_flow_needs_client_secret(tmp_path):
    provider = provider_for(tmp_path, tmp_path / "token.json", tmp_path / "missing.json", allow_interactive=True)

    with pytest.raises(CredentialsError):
        provider.get_credentials()


def test_build_gmail_service(tmp_path, token_file, credentials_file):
    creds = MagicMock(valid=True)
    with patch("autoresponder.auth.Credentials.from_authorized_user_file", return_value=creds), \
         patch("autoresponder.auth.build") as build:
        build_gmail_service(provider_for(tmp_path, token_file, credentials_file))

    build.assert_called_once_with("gmail", "v1", credentials=creds, cache_discovery=False)
