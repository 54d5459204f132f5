import threading

from facility_features.services.feature_toggles import build_toggle_service

from .conftest import TOY_SECTIONS


def test_readers_never_observe_partial_enable():
    service = build_toggle_service(TOY_SECTIONS)
    stop = threading.Event()
    observed = []

    def writer():
        for _ in range(200):
            service.enable_feature("B")
            service.disable_feature("B")
            service.disable_feature("A")
        stop.set()

    def reader():
        while not stop.is_set():
            config = service.config_for(None)
            if config["B"] and not config["A"]:
                observed.append(dict(config))

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert observed == []


def test_concurrent_facility_writes_stay_consistent():
    service = build_toggle_service(TOY_SECTIONS)
    facilities = [f"site-{index}" for index in range(8)]
    errors = []

    def worker(facility_id):
        try:
            for _ in range(50):
                service.enable_feature("B", facility_id)
                service.set_global_config({"C": True})
                service.set_global_config({"C": False})
                service.set_facility_config(facility_id, {"E": True})
                service.enable_feature("D", facility_id)
        except Exception as exc:  # surfaced through the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(facility_id,)) for facility_id in facilities]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    assert sorted(service.store.facility_ids()) == sorted(facilities)
    for facility_id in facilities:
        config = service.config_for(facility_id)
        assert service.resolver.validate(config) == []
        assert config["B"] and config["D"]
        assert config["C"] is False


def test_concurrent_toggles_of_shared_feature_are_serialized():
    service = build_toggle_service(TOY_SECTIONS)
    changes = []
    service.add_listener(changes.append)
    barrier = threading.Barrier(10)

    def worker():
        barrier.wait()
        service.enable_feature("A")

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert service.is_enabled("A")
    assert sum(1 for change in changes if change.changes) == 1
