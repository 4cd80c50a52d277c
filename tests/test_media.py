import threading

from rtmplive.media import Packet, PacketQueue, StreamInfo


def test_pop_returns_most_recent():
    q = PacketQueue(10)
    first, second, third = Packet(timestamp=1), Packet(timestamp=2), Packet(timestamp=3)
    for p in (first, second, third):
        q.push(p)
    assert q.pop() is third
    assert q.pop() is second
    assert len(q) == 1


def test_pop_on_empty_queue():
    assert PacketQueue(3).pop() is None


def test_full_queue_replaces_newest():
    q = PacketQueue(2)
    a, b, c = Packet(timestamp=1), Packet(timestamp=2), Packet(timestamp=3)
    q.push(a)
    q.push(b)
    q.push(c)
    assert q.all() == [a, c]


def test_all_empties_queue():
    q = PacketQueue(5)
    packets = [Packet(timestamp=i) for i in range(3)]
    for p in packets:
        q.push(p)
    assert q.all() == packets
    assert len(q) == 0
    assert q.all() == []


def test_unbounded_queue_grows():
    q = PacketQueue()
    packets = [Packet(timestamp=i) for i in range(50)]
    for p in packets:
        q.push(p)
    assert len(q) == len(packets)


def test_concurrent_pushes_are_all_kept():
    q = PacketQueue()
    n_threads, per_thread = 4, 100

    def worker():
        for i in range(per_thread):
            q.push(Packet(timestamp=i))

    threads = [threading.Thread(target=worker) for _ in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(q) == n_threads * per_thread


def test_stream_info_interval_flag():
    assert StreamInfo(key="live/a", inter=True).is_interval() is True
    assert StreamInfo(key="live/a").is_interval() is False


def test_packet_defaults_carry_no_payload():
    p = Packet()
    assert p.data == b""
    assert p.header is None
    assert not (p.is_audio or p.is_video or p.is_metadata)