"""Unit tests for CDN URL verification. requests is patched, no network calls."""

import unittest
from unittest.mock import MagicMock, patch

import requests

from bunny_optimizer.cdn_checker import CdnCheckError, verify_cdn_url


def _response(status: int = 200, content_type: str = 'image/jpeg') -> MagicMock:
    response = MagicMock()
    response.headers = {'Content-Type': content_type}
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return response


class TestVerifyCdnUrl(unittest.TestCase):

    @patch('bunny_optimizer.cdn_checker.requests.head')
    def test_image_response(self, mock_head: MagicMock) -> None:
        mock_head.return_value = _response(content_type='image/webp')

        self.assertEqual(verify_cdn_url('https://cdn.example.net/a.jpg?width=300', 5), 'image/webp')
        mock_head.assert_called_once()
        self.assertEqual(mock_head.call_args.kwargs['timeout'], 5)

    @patch('bunny_optimizer.cdn_checker.requests.head')
    def test_non_image_response(self, mock_head: MagicMock) -> None:
        mock_head.return_value = _response(content_type='text/html')

        with self.assertRaises(CdnCheckError):
            verify_cdn_url('https://cdn.example.net/a.jpg')

    @patch('bunny_optimizer.cdn_checker.requests.head')
    def test_http_error_is_not_retried(self, mock_head: MagicMock) -> None:
        mock_head.return_value = _response(status=404)

        with self.assertRaises(CdnCheckError):
            verify_cdn_url('https://cdn.example.net/missing.jpg')
        mock_head.assert_called_once()

    @patch('tenacity.nap.time.sleep')
    @patch('bunny_optimizer.cdn_checker.requests.head')
    def test_connection_errors_are_retried(self, mock_head: MagicMock, _sleep: MagicMock) -> None:
        mock_head.side_effect = [requests.ConnectionError("reset"), _response()]

        self.assertEqual(verify_cdn_url('https://cdn.example.net/a.jpg'), 'image/jpeg')
        self.assertEqual(mock_head.call_count, 2)

    @patch('tenacity.nap.time.sleep')
    @patch('bunny_optimizer.cdn_checker.requests.head')
    def test_gives_up_after_retries(self, mock_head: MagicMock, _sleep: MagicMock) -> None:
        mock_head.side_effect = requests.Timeout("timed out")

        with self.assertRaises(CdnCheckError) as ctx:
            verify_cdn_url('https://cdn.example.net/a.jpg')
        self.assertIsInstance(ctx.exception.__cause__, requests.Timeout)
        self.assertEqual(mock_head.call_count, 3)


if __name__ == '__main__':
    unittest.main()
