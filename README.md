# metismr

`metismr` is a small MapReduce engine that runs inside one Python process,
together with a set of applications built on it: word count, reverse index,
colour histogram, string match, linear regression, PCA (row means and
covariance), k-means and matrix multiplication.

A job is split into chunks, each chunk is mapped into key/value pairs that
land in a grid of buckets (one row per map worker, one column per reduce
task), each column is grouped by key and reduced (through a combiner, a
reduce function or a value modifier), and the per-column results are merged
into one sorted output. Intermediate pairs are kept in one of three bucket
stores in `metismr.buckets`:

- `AppendBuckets`: append-only arrays of key/value pairs (used for map-only
  jobs),
- `ArrayBuckets`: key-sorted arrays that group values under each key,
- `BTreeBuckets`: B+ trees of grouped keys (the default for other jobs).

When the number of reduce tasks is zero, the first split of every map worker
is run as a sample; an `Estimator` extrapolates the number of distinct keys,
and the number of reduce tasks is taken as the first number not below
`keys / 10` that has no divisor between 2 and its square root (at least 1).
The sampled pairs are then rehashed into the real grid.

## Installation

```
pip install .
```

Python 3.10 or later is required; there are no third-party dependencies.

## Command-line tools

Every application is installed as a command. Common options are `-p`
(number of map worker rows), `-m` (number of map tasks), `-r` (number of
reduce tasks) and `-q` (quiet: print no results).

Count words in a text file and show the ten most frequent ones, or sort
alphabetically (`-a`) and write every word with its count to a file (`-o`):

```
metismr-wc input.txt -l 10
metismr-wc input.txt -a -o counts.txt
```

A word starts with a letter and continues over letters and apostrophes; words
are upper-cased.

Build a reverse index (the offsets of every occurrence of every word) and
show the first words with their number of occurrences:

```
metismr-wr input.txt -l 10
```

Compute the blue, green and red histograms of a 24-bit BMP image:

```
metismr-hist picture.bmp
```

Compare every line of a file against four built-in keys after shifting each
byte of the line up by five; for each key, the number of lines whose encoded
form differs from it is printed:

```
metismr-string-match keys.txt
```

Fit a straight line through a file of points, each point being two signed
bytes `x`, `y` (no `-r` option here):

```
metismr-linear-regression points.bin
```

Compute the upper triangle of the covariance matrix of a random matrix with
`-R` rows, `-C` columns and values below `-M` (the matrix is generated from a
fixed seed, so runs repeat):

```
metismr-pca -R 10 -C 10 -M 100
```

Cluster generated points until no assignment changes; dimension, number of
clusters, number of points and the largest coordinate value are positional
arguments, and the final means are printed:

```
metismr-kmeans 3 10 1000 1000
```

Multiply two random square matrices of side `-l` (values wrap around as
signed 32-bit integers) and print the first and last rows of the product:

```
metismr-matrix-mult -l 64
```

## Using the library

Each application is also a function:

```python
from metismr.wc import count_words, format_top

with open("input.txt", "rb") as fh:
    data = fh.read()

results = count_words(data, nprocs=4, map_tasks=0, reduce_tasks=0,
                      alphanumeric=False)
print(format_top(results, 10))
```

The other entry points are `metismr.hist.compute_histogram`,
`metismr.string_match.string_match`,
`metismr.linear_regression.linear_regression` (returns a
`RegressionResult`), `metismr.pca.compute_pca`,
`metismr.wr.reverse_index`, `metismr.kmeans.run_kmeans` and
`metismr.matrix_mult.multiply`.

Your own jobs are described with `metismr.engine.Application` (its kind is an
`AppType`: `MAPREDUCE`, `MAPGROUP` or `MAPONLY`), fed by a splitter such as
`metismr.splitter.DefaultSplitter` or any iterable of splits, and started
with `metismr.engine.run_job`, which returns the final pairs. Keys are routed
to reduce columns by `default_hash` (32-bit djb2) unless the application
supplies `part_func`.

The building blocks stand on their own too: `bsearch_eq` and `bsearch_lar` in
`metismr.bsearch` search sorted sequences with a three-way comparator,
`metismr.btree.KeyValsBTree` is a B+ tree grouping values by key,
`metismr.containers` holds the array collections, and
`metismr.mergesort.mergesort` merges sorted collections.

## What it does not do

- Everything runs sequentially in the calling thread. `-p` / `nprocs` only
  sets how many map worker rows the buckets have; no threads or processes are
  started.
- No timing or profiling statistics are collected or printed.
- `metismr-matrix-mult` always uses block splitting, so its `-m` option has
  no effect; `metismr-wc` accepts `-s` and ignores it.

## Running the tests

```
pip install ".[test]"
pytest
```