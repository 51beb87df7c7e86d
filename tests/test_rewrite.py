"""
Tests for the batch rewrite: CSV handling, the report and the rewrite() run.

Files go to a temporary directory; CDN checks are patched.
"""

import csv
import os
import tempfile
import unittest
from unittest.mock import patch

from bunny_optimizer.cdn_checker import CdnCheckError
from bunny_optimizer.config import load_config, validate_config, Config
from bunny_optimizer.csv_handler import read_attachments_csv, row_to_attachment, write_mapping_csv
from bunny_optimizer.optimizer import BunnyOptimizer
from bunny_optimizer.report import RewriteReport
from rewrite import rewrite

ROWS = [
    {
        'src': 'https://x.com/wp/photo-300x200.jpg',
        'file': '2024/05/photo.jpg',
        'original_width': '1600',
        'original_height': '900',
        'quality': '80',
        'sharpen': 'TRUE',
        'aspect_ratio': '',
        'srcset': 'https://x.com/wp/photo-300x200.jpg 300w, https://x.com/wp/photo-768x512.jpg 768w',
    },
    {
        'src': 'https://x.com/wp/banner-1024x576.png',
        'file': '2024/05/banner.png',
        'original_width': '1600',
        'original_height': '900',
        'quality': '',
        'sharpen': '',
        'aspect_ratio': '1:1',
        'srcset': '',
    },
    {
        'src': '',
        'file': '2024/05/empty.jpg',
        'original_width': '',
        'original_height': '',
        'quality': '',
        'sharpen': '',
        'aspect_ratio': '',
        'srcset': '',
    },
]


def _write_csv(path: str, rows: list) -> None:
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)


def _read_csv(path: str) -> list:
    with open(path, encoding='utf-8', newline='') as f:
        return list(csv.DictReader(f))


class TestCsvHandler(unittest.TestCase):

    def test_row_to_attachment(self) -> None:
        attr, meta = row_to_attachment(ROWS[0])

        self.assertEqual(attr, {
            'src': 'https://x.com/wp/photo-300x200.jpg',
            'srcset': 'https://x.com/wp/photo-300x200.jpg 300w, https://x.com/wp/photo-768x512.jpg 768w',
            'bunny': {'quality': '80', 'sharpen': True},
        })
        self.assertEqual(meta, {'file': '2024/05/photo.jpg', 'width': '1600', 'height': '900'})

    def test_row_without_file_has_no_metadata(self) -> None:
        attr, meta = row_to_attachment({'url': 'https://x.com/a.jpg', 'sharpen': 'maybe'})
        self.assertEqual(attr, {'src': 'https://x.com/a.jpg', 'bunny': {'sharpen': 'maybe'}})
        self.assertIsNone(meta)

    def test_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            read_attachments_csv('/nonexistent/attachments.csv')

    def test_read_strips_cells(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'in.csv')
            with open(path, 'w', encoding='utf-8') as f:
                f.write('src , file\n https://x.com/a.jpg ,a.jpg\n')

            self.assertEqual(read_attachments_csv(path), [{'src': 'https://x.com/a.jpg', 'file': 'a.jpg'}])

    def test_write_skips_empty_mappings(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'out', 'mapping.csv')
            write_mapping_csv([], path)
            self.assertFalse(os.path.exists(path))


class TestRewriteReport(unittest.TestCase):

    def test_counters_and_mappings(self) -> None:
        report = RewriteReport(total_items=3)
        report.mark_success('a', 'a2', {'bunny_width': '10'})
        report.mark_failed('b', 'boom', 'b2')
        report.mark_skipped('', 'No image URL')

        self.assertEqual((report.success_count, report.failed_count, report.skipped_count), (1, 1, 1))
        self.assertEqual(report.get_mappings()[0]['bunny_width'], '10')
        self.assertEqual(report.get_mappings()[1]['status'], 'failed')


class TestConfig(unittest.TestCase):

    @patch.dict(os.environ, {'BUNNY_CDN_HOST': 'media.b-cdn.net', 'BUNNY_VERIFY_TIMEOUT': 'soon'})
    def test_load_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = load_config(os.path.join(tmp, 'missing.env'))

        self.assertEqual(config.cdn_host, 'media.b-cdn.net')
        self.assertEqual(config.verify_timeout, 15.0)

    def test_validate_config(self) -> None:
        self.assertEqual(validate_config(Config()), [])
        self.assertEqual(len(validate_config(Config(cdn_host='https://cdn.example.net', verify_timeout=0))), 2)


class TestRewrite(unittest.TestCase):

    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.input = os.path.join(self.tmp.name, 'attachments.csv')
        self.output = os.path.join(self.tmp.name, 'mapping.csv')
        self.env = os.path.join(self.tmp.name, 'test.env')
        _write_csv(self.input, ROWS)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_rewrite_writes_mapping(self) -> None:
        code = rewrite(self.input, self.output, cdn_host='cdn.example.net', env_file=self.env)

        self.assertEqual(code, 0)
        mappings = _read_csv(self.output)
        self.assertEqual(len(mappings), 2)
        self.assertEqual(
            mappings[0]['new_url'],
            'https://cdn.example.net/wp/photo.jpg?width=300&height=200&quality=80&sharpen=true',
        )
        self.assertEqual(mappings[1]['new_url'], 'https://cdn.example.net/wp/banner.png?width=1024&aspect_ratio=1:1')
        self.assertEqual(mappings[1]['bunny_width'], '900')
        self.assertEqual(mappings[1]['bunny_height'], '900')
        self.assertEqual(
            mappings[0]['srcset'],
            'https://cdn.example.net/wp/photo.jpg?width=300&height=200&quality=80&sharpen=true 300w, '
            'https://cdn.example.net/wp/photo.jpg?width=768&height=512&quality=80&sharpen=true 768w',
        )
        self.assertEqual(mappings[1]['srcset'], '')

    def test_row_error_does_not_stop_batch(self) -> None:
        filter_attributes = BunnyOptimizer.filter_attributes

        def fail_on_photo(optimizer, attr, meta):
            if 'photo' in attr['src']:
                raise RuntimeError('bad metadata')
            return filter_attributes(optimizer, attr, meta)

        with patch.object(BunnyOptimizer, 'filter_attributes', autospec=True, side_effect=fail_on_photo):
            code = rewrite(self.input, self.output, cdn_host='cdn.example.net', env_file=self.env)

        self.assertEqual(code, 1)
        mappings = _read_csv(self.output)
        self.assertEqual([m['status'] for m in mappings], ['failed', 'success'])
        self.assertIn('bad metadata', mappings[0]['error'])
        self.assertEqual(mappings[1]['new_url'], 'https://cdn.example.net/wp/banner.png?width=1024&aspect_ratio=1:1')

    def test_overflowing_numbers_are_dropped(self) -> None:
        row = dict(ROWS[1], quality='1e400', original_width='1e400')
        _write_csv(self.input, [row])

        code = rewrite(self.input, self.output, cdn_host='cdn.example.net', env_file=self.env)

        self.assertEqual(code, 0)
        mappings = _read_csv(self.output)
        self.assertEqual(mappings[0]['new_url'], 'https://cdn.example.net/wp/banner.png?width=1024&aspect_ratio=1:1')
        self.assertEqual((mappings[0]['bunny_width'], mappings[0]['bunny_height']), ('0', '900'))

    @patch('rewrite.verify_cdn_url')
    def test_failed_verification_sets_exit_code(self, mock_verify) -> None:
        mock_verify.side_effect = ['image/jpeg', CdnCheckError('Unexpected content type: text/html')]

        code = rewrite(self.input, self.output, cdn_host='cdn.example.net', verify=True, env_file=self.env)

        self.assertEqual(code, 1)
        mappings = _read_csv(self.output)
        self.assertEqual([m['status'] for m in mappings], ['success', 'failed'])
        self.assertIn('text/html', mappings[1]['error'])

    def test_invalid_cdn_host(self) -> None:
        self.assertEqual(rewrite(self.input, self.output, cdn_host='https://cdn/', env_file=self.env), 1)
        self.assertFalse(os.path.exists(self.output))


if __name__ == '__main__':
    unittest.main()
