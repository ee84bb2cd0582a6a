from vtrim.utils.formatting import format_time, extract_file_name


def test_format_time_zero():
    assert format_time(0) == "0:00"


def test_format_time_under_a_minute():
    assert format_time(45) == "0:45"
    assert format_time(5) == "0:05"


def test_format_time_minutes():
    assert format_time(60) == "1:00"
    assert format_time(125) == "2:05"
    assert format_time(3661) == "61:01"
    assert format_time(7200) == "120:00"


def test_format_time_floors_fractions():
    assert format_time(125.9) == "2:05"
    assert format_time(59.5) == "0:59"


def test_format_time_negative():
    assert format_time(-30) == "-1:-30"


def test_extract_file_name():
    assert extract_file_name("/home/user/video.mp4") == "video.mp4"
    assert extract_file_name("C:\\Users\\Name\\video.mp4") == "video.mp4"
    assert extract_file_name("C:/Users/Name\\video.mp4") == "video.mp4"
    assert extract_file_name("video.mp4") == "video.mp4"
    assert extract_file_name("") == ""
    assert extract_file_name("/home/user/") == ""
    assert extract_file_name("/path/to/my video [1080p].mp4") == "my video [1080p].mp4"
