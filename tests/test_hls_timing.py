from rtmplive.hls_timing import (
    H264_DEFAULT_HZ,
    SYNC_MS,
    Align,
    AudioCache,
    Status,
)


def test_status_tracks_first_and_last():
    st = Status()
    st.update(False, 100)
    st.update(True, 250)
    st.update(False, 400)
    assert st.first_timestamp == 100
    assert st.duration_ms() == 400 - 100
    assert st.has_video is True


def test_status_reset_starts_new_segment():
    st = Status()
    st.update(True, 100)
    st.update(True, 3200)
    st.reset_and_new()
    assert st.seq_id == 1
    assert st.has_video is False
    assert st.created_at is not None
    st.update(False, 5000)
    assert st.first_timestamp == 5000
    assert st.duration_ms() == 0


def test_align_snaps_small_jitter():
    inc = 1920
    a = Align()
    assert a.align(0, inc) == 0
    assert a.align(inc + 80, inc) == inc
    assert a.align(2 * inc + 60, inc) == 2 * inc
    assert a.frame_num == 3


def test_align_resets_on_large_jump():
    inc = 1920
    a = Align()
    a.align(0, inc)
    a.align(inc, inc)
    assert a.align(100000, inc) == 100000
    assert a.frame_num == 1
    assert a.frame_base == 100000
    assert a.align(100000 + inc + 50, inc) == 100000 + inc


def test_align_threshold_boundary():
    limit = SYNC_MS * H264_DEFAULT_HZ
    a = Align()
    a.align(0, 1000)
    assert a.align(1000 + limit, 1000) == 1000
    b = Align()
    b.align(0, 1000)
    assert b.align(1000 + limit + 1, 1000) == 1000 + limit + 1


def test_audio_cache_batches_frames():
    c = AudioCache()
    c.cache(b"ab", 900)
    c.cache(b"cde", 1800)
    assert c.cache_num() == 2
    length, pts, data = c.get_frame()
    assert (length, pts, data) == (5, 900, b"abcde")
    assert c.cache_num() == 0


def test_audio_cache_restarts_after_get_frame():
    c = AudioCache()
    c.cache(b"old", 1)
    c.get_frame()
    c.cache(b"new", 2)
    assert c.get_frame() == (3, 2, b"new")


def test_audio_cache_returns_false():
    c = AudioCache()
    assert c.cache(b"x", 0) is False
    assert c.cache_num() == 1