import pytest

from metismr.kmeans import (
    KMeansSplitter,
    add_to_sum,
    find_clusters,
    format_means,
    generate_points,
    get_sq_dist,
    kmeans_combine,
    main,
    run_kmeans,
)


def test_generate_points_shape_and_range():
    pts = generate_points(20, 3, 7)
    assert len(pts) == 20
    assert all(len(p) == 3 for p in pts)
    assert all(1 <= v <= 7 for p in pts for v in p)
    assert pts[0] == [1, 1, 1]


def test_generate_points_first_coordinate_constant():
    pts = generate_points(15, 4, 9)
    assert {p[0] for p in pts} == {pts[0][0]}


def test_generate_points_rejects_bad_grid():
    with pytest.raises(ValueError):
        generate_points(3, 2, 0)


def test_get_sq_dist_value():
    assert get_sq_dist([0, 0], [3, 4]) == 25


def test_get_sq_dist_symmetric_and_zero_on_self():
    a, b = [1, 5, -2], [4, 0, 7]
    assert get_sq_dist(a, b) == get_sq_dist(b, a)
    assert get_sq_dist(a, a) == 0


def test_add_to_sum_elementwise():
    total, point = [1, 2, 3], [10, 20, 30]
    result = add_to_sum(total, point)
    assert [r - p for r, p in zip(result, point)] == total
    assert total == [1, 2, 3]


def test_find_clusters_picks_nearest_mean():
    means = [[0, 0], [10, 10], [20, 0]]
    points = [[1, 1], [9, 9], [19, 1], [11, 11]]
    clusters = [-1] * 6
    pairs, modified = find_clusters(points, means, clusters, 2)
    assert modified is True
    assert clusters[:2] == [-1, -1]
    for point, idx in zip(points, clusters[2:]):
        best = get_sq_dist(point, means[idx])
        assert all(best <= get_sq_dist(point, m) for m in means)
    assert [k for k, _ in pairs] == clusters[2:]
    assert [p for _, p in pairs] == points


def test_find_clusters_unchanged_second_time():
    means = [[0], [100]]
    points = [[3], [97], [40]]
    clusters = [-1] * 3
    find_clusters(points, means, clusters, 0)
    before = list(clusters)
    _, modified = find_clusters(points, means, clusters, 0)
    assert modified is False
    assert clusters == before


def test_find_clusters_tie_goes_to_first():
    clusters = [-1]
    pairs, _ = find_clusters([[5]], [[5], [5]], clusters, 0)
    assert clusters == [0]
    assert pairs[0][0] == 0


def test_splitter_covers_all_points():
    splitter = KMeansSplitter(10, nsplits=3)
    splits = []
    while (split := splitter.next_split(1)) is not None:
        splits.append(split)
    assert [i for s in splits for i in s] == list(range(10))
    assert all(len(s) <= 10 // 3 for s in splits)
    assert splitter.next_split(1) is None


def test_splitter_default_nsplits():
    splitter = KMeansSplitter(100)
    first = splitter.next_split(2)
    assert len(first) == 100 // (2 * 16)
    assert splitter.nsplits == 2 * 16


def test_splitter_rejects_negative():
    with pytest.raises(ValueError):
        KMeansSplitter(10, nsplits=-1)


def test_combine_sums_points():
    assert kmeans_combine(0, [[1, 2], [3, 4]]) == [add_to_sum([1, 2], [3, 4])]


def test_run_kmeans_identical_points():
    means = run_kmeans(2, 3, 10, 1, nprocs=1, map_tasks=2, reduce_tasks=1)
    assert means == [[1, 1]] * 3


def test_run_kmeans_independent_of_layout():
    first = run_kmeans(2, 3, 40, 10, nprocs=1, map_tasks=1, reduce_tasks=1)
    second = run_kmeans(2, 3, 40, 10, nprocs=2, map_tasks=5, reduce_tasks=3)
    assert first == second


def test_run_kmeans_means_within_grid():
    means = run_kmeans(3, 4, 50, 8, nprocs=2)
    assert len(means) == 4
    assert all(len(m) == 3 for m in means)
    assert all(1 <= v <= 8 for m in means for v in m)


def test_run_kmeans_illegal_arguments():
    with pytest.raises(ValueError):
        run_kmeans(0, 2, 10, 5)
    with pytest.raises(ValueError):
        run_kmeans(2, 20, 10, 5)


def test_format_means():
    assert format_means([[1, 2]]) == "    1     2 \n"


def test_main_illegal_argument(capsys):
    assert main(["3", "0", "10", "5"]) == 1
    assert "Illegal argument value" in capsys.readouterr().out


def test_main_quiet_prints_nothing(capsys):
    assert main(["2", "2", "20", "5", "-q", "-p", "1"]) == 0
    assert capsys.readouterr().out == ""


def test_main_prints_means(capsys):
    assert main(["2", "1", "5", "1", "-p", "1"]) == 0
    assert capsys.readouterr().out == format_means([[1, 1]])