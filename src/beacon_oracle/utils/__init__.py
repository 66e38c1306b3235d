"""Chain and relay clients used by the Beacon Oracle operator."""
