#!/usr/bin/env python3
"""
Basic usage example for inline-rust.

Build the module, then run the expanded copy:

    inline-rust build examples/basic_usage.py
    python examples/build/basic_usage.py

Or import it with the hook installed:

    import inline_rust.importer
    inline_rust.importer.install()
    import basic_usage
"""

from inline_rust import basic, emit_code_block, libc, rust, rust_interruptible_io, rust_io, set_context

set_context(basic | libc)

emit_code_block('''
fn gcd(mut a: u64, mut b: u64) -> u64 {
    while b != 0 {
        let t = b;
        b = a % b;
        a = t;
    }
    a
}
''')


def rust_inc(x):
    return rust("i32 { 1i32 + $(x: i32) }")


def rust_gcd(a, b):
    return rust("u64 { gcd($(a: u64), $(b: u64)) }")


def rust_abs(n):
    return rust("libc::c_long { $(n: libc::c_long).abs() }")


def rust_hello(n):
    rust_io('() { println!("Your number: {}", $(n: i32)) }')


def rust_sleep(ms):
    # Ctrl-C while this runs interrupts the sleeping thread as well.
    rust_interruptible_io("() { std::thread::sleep(std::time::Duration::from_millis($(ms: u64))) }")


def main():
    """Call each function once."""
    print("inline-rust - Basic Usage Example")
    print("=" * 40)

    print(f"rust_inc(41) = {rust_inc(41)}")
    print(f"rust_gcd(1071, 462) = {rust_gcd(1071, 462)}")
    print(f"rust_abs(-7) = {rust_abs(-7)}")
    rust_hello(3)

    print("Sleeping 100 ms in Rust...")
    rust_sleep(100)
    print("Done")


if __name__ == "__main__":
    main()
