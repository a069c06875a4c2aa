"""
Tests for file filtering.
"""

from pathlib import Path
import sys

# Add the server directory to the path for importing
server_dir = Path(__file__).parent.parent
sys.path.insert(0, str(server_dir))

from engine.file_filter import clear_caches, filter_files, is_excluded_path, should_analyze_file


def setup_function():
    clear_caches()


def test_vendor_and_cache_dirs_excluded():
    assert is_excluded_path("/repo/vendor/symfony/Kernel.php")
    assert is_excluded_path("C:\\repo\\node_modules\\x.php")
    assert is_excluded_path("/repo/.git/hooks/x.php")
    assert not is_excluded_path("/repo/src/Vendors.php")
    assert not is_excluded_path("/repo/src/vendorish/x.php")


def test_blade_templates_skipped():
    assert not should_analyze_file("/repo/resources/views/home.blade.php")
    assert should_analyze_file("/repo/app/Home.php")


def test_extra_excludes():
    files = ["/repo/app/A.php", "/repo/legacy/B.php", "/repo/app/Legacy.php"]

    assert filter_files(files, extra_excludes=["legacy"]) == ["/repo/app/A.php", "/repo/app/Legacy.php"]
    assert filter_files(files) == files
