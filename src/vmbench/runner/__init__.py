"""Benchmark execution pipeline (compile, prepare, time, report).

Modules:
    - process: TimedProcessRunner and RunOutcome
    - compiler: ArtifactCompiler
    - registry: ImplementationRegistry (one-time setup per implementation)
    - git: Repository cloning and checkout for setup
    - preflight: Executable resolution
    - executor: BenchmarkOrchestrator
    - results: RunResult, Report data structures
    - reporter: ResultReporter (text report, JSON results, cleanup)
    - metadata: Run metadata collection
"""
