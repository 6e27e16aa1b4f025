import unittest
from unittest.mock import patch, Mock

from libs.common.settings import Settings

# Target for patching should be the absolute path to the module
# This ensures that the mocks are applied correctly
FIREBASE_CLIENT_PATH = 'libs.firebase.client'

class TestFirebase(unittest.TestCase):

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {})
    @patch(f'{FIREBASE_CLIENT_PATH}.get_settings')
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.credentials.Certificate')
    def test_initialize_firebase_app_from_json(self, mock_certificate, mock_initialize_app, mock_get_settings):
        # Arrange
        mock_get_settings.return_value = Settings(firebase_admin_sdk_json='{}', firebase_project_id="peerhelp-dev")

        # Act
        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        # Assert
        mock_certificate.assert_called_once_with({})
        mock_initialize_app.assert_called_once_with(mock_certificate.return_value, {"projectId": "peerhelp-dev"})

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {})
    @patch(f'{FIREBASE_CLIENT_PATH}.get_settings')
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    def test_initialize_firebase_app_invalid_json(self, mock_initialize_app, mock_get_settings):
        mock_get_settings.return_value = Settings(firebase_admin_sdk_json='not json')

        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        mock_initialize_app.assert_not_called()

    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin._apps', {"[DEFAULT]": Mock()})
    @patch(f'{FIREBASE_CLIENT_PATH}.firebase_admin.initialize_app')
    def test_initialize_firebase_app_once(self, mock_initialize_app):
        from libs.firebase.client import initialize_firebase_app
        initialize_firebase_app()

        mock_initialize_app.assert_not_called()

    @patch(f'{FIREBASE_CLIENT_PATH}.initialize_firebase_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.AsyncClient')
    def test_get_firestore_async_client(self, mock_async_client, mock_initialize_app):
        # Arrange
        from libs.firebase.client import get_firestore_async_client

        # Act
        client = get_firestore_async_client()

        # Assert
        mock_initialize_app.assert_called_once()
        mock_async_client.assert_called_once()
        self.assertEqual(mock_async_client.call_args.kwargs["database"], "(default)")
        self.assertIsNotNone(client)

    @patch(f'{FIREBASE_CLIENT_PATH}.initialize_firebase_app')
    @patch(f'{FIREBASE_CLIENT_PATH}.Client')
    def test_get_firestore_client(self, mock_client, mock_initialize_app):
        from libs.firebase.client import get_firestore_client

        client = get_firestore_client()

        mock_initialize_app.assert_called_once()
        mock_client.assert_called_once()
        self.assertIsNotNone(client)

if __name__ == '__main__':
    unittest.main()
